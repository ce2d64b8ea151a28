import pytest

from poolvault.assets.book import AssetBook
from poolvault.auth import OperatorGate
from poolvault.errors import InvalidAmount, Overflow
from poolvault.logs.audit_log import read_jsonl
from poolvault.tracker import ExternalInvestmentTracker

OP = "operator"
POOL = "pool:acct"


def test_override_overwrites_without_moving_assets(tmp_path):
    book = AssetBook()
    audit = tmp_path / "audit" / "overrides.jsonl"
    tr = ExternalInvestmentTracker(book, POOL, OperatorGate(OP), pool_id="t-override", audit_log_path=str(audit))
    tr.set_deployed_balance(OP, 500, reason="venue statement")
    assert tr.total_deployed() == 500
    tr.set_deployed_balance(OP, 120)
    assert tr.total_deployed() == 120
    assert book.outcomes == []

    records = read_jsonl(str(audit))
    assert [(r["previous"], r["amount"]) for r in records] == [(0, 500), (500, 120)]
    assert records[0]["actor"] == OP
    assert records[0]["reason"] == "venue statement"
    assert records[0]["action"] == "set_deployed_balance"


def test_override_zero_rejected():
    tr = ExternalInvestmentTracker(AssetBook(), POOL, OperatorGate(OP), pool_id="t-override")
    tr.set_deployed_balance(OP, 10)
    with pytest.raises(InvalidAmount):
        tr.set_deployed_balance(OP, 0)
    assert tr.total_deployed() == 10


def test_override_beyond_width_rejected():
    tr = ExternalInvestmentTracker(AssetBook(), POOL, OperatorGate(OP), pool_id="t-override", width_bits=16)
    tr.set_deployed_balance(OP, 65_535)
    with pytest.raises(Overflow):
        tr.set_deployed_balance(OP, 65_536)
    assert tr.total_deployed() == 65_535


def test_override_without_audit_path_still_applies():
    tr = ExternalInvestmentTracker(AssetBook(), POOL, OperatorGate(OP), pool_id="t-override")
    tr.set_deployed_balance(OP, 7)
    assert tr.deployed_amount == 7


def test_override_logged_at_warning(caplog):
    tr = ExternalInvestmentTracker(AssetBook(), POOL, OperatorGate(OP), pool_id="t-override-log")
    with caplog.at_level("WARNING", logger="poolvault.tracker"):
        tr.set_deployed_balance(OP, 42)
    assert any('"event":"set_deployed_balance"' in r.getMessage() for r in caplog.records)
