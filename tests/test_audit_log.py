import json

from prometheus_client import REGISTRY

from poolvault.logs.audit_log import append_jsonl, log_operation, read_jsonl, validate_record


def _record(**overrides):
    rec = {"ts": 1, "pool": "t-audit", "actor": "op", "action": "set_deployed_balance",
           "previous": 0, "amount": 10, "reason": None}
    rec.update(overrides)
    return rec


def _sample(metric: str, labels: dict) -> float:
    val = REGISTRY.get_sample_value(metric, labels)
    return 0.0 if val is None else float(val)


def test_append_creates_directory_and_appends(tmp_path):
    path = str(tmp_path / "nested" / "audit.jsonl")
    before = _sample("audit_log_appends_total", {"pool": "t-audit"})
    assert append_jsonl(path, _record()) is True
    assert append_jsonl(path, _record(amount=20)) is True
    assert [r["amount"] for r in read_jsonl(path)] == [10, 20]
    assert _sample("audit_log_appends_total", {"pool": "t-audit"}) == before + 2


def test_missing_fields_rejected(tmp_path):
    path = str(tmp_path / "audit.jsonl")
    rec = _record()
    del rec["actor"]
    assert validate_record(rec) == ["actor"]
    before = _sample("audit_log_errors_total", {"reason": "missing_fields", "pool": "t-audit"})
    assert append_jsonl(path, rec) is False
    assert not (tmp_path / "audit.jsonl").exists()
    assert _sample("audit_log_errors_total", {"reason": "missing_fields", "pool": "t-audit"}) == before + 1


def test_unwritable_path_counted(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert append_jsonl(str(blocker / "audit.jsonl"), _record()) is False


def test_log_operation_emits_json(caplog):
    with caplog.at_level("INFO", logger="poolvault.tracker"):
        log_operation("invest", "p1", "op", 5, 0, 5, extra={"note": "x"})
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "invest"
    assert payload["deployed_after"] == 5
    assert payload["component"] == "tracker"
    assert payload["extra"] == {"note": "x"}


def test_log_operation_keeps_invalid_amount_and_component(caplog):
    with caplog.at_level("WARNING", logger="poolvault.pool"):
        log_operation("deposit", "p1", "alice", "ten", 0, 0, severity="WARNING", component="pool")
    rec = caplog.records[-1]
    assert rec.name == "poolvault.pool"
    payload = json.loads(rec.getMessage())
    assert payload["amount"] == "'ten'"
    assert payload["component"] == "pool"
