import pandas as pd

from poolvault.assets.book import AssetBook
from poolvault.config.loader import AuditConfig, PoolConfig, Settings
from poolvault.main import build_pool, main, run_demo


def _settings(tmp_path, receipt: bool = True) -> Settings:
    return Settings(
        pool=PoolConfig(id="demo-pool", account="pool:demo", receipt_token=receipt),
        operator="ops",
        audit=AuditConfig(path=str(tmp_path / "audit.jsonl")),
        journal_dir=str(tmp_path / "journal"),
    )


def test_build_pool_wires_receipt_and_operator(tmp_path):
    pool = build_pool(_settings(tmp_path))
    assert pool.tracker.gate.operator == "ops"
    assert pool.tracker.receipt is not None
    assert pool.snapshot().receipt_supply == 0
    assert build_pool(_settings(tmp_path, receipt=False)).tracker.receipt is None


def test_demo_flow_ends_with_profit_absorbed(tmp_path):
    settings = _settings(tmp_path)
    book = AssetBook(decimals=6)
    pool = build_pool(settings, book)
    run_demo(pool, book, settings.operator)
    snap = pool.snapshot()
    assert snap.deployed == 0
    assert snap.receipt_supply == 0
    assert snap.share_price > 1.0
    assert pool.balance_of("bob") == 0
    assert [r.action for r in pool.rows] == ["deposit", "deposit", "invest", "redeem", "redeem", "withdraw"]


def test_main_runs_from_config(tmp_path, monkeypatch):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "pool:\n  id: demo-main\n  account: pool:demo-main\n  receipt_token: true\n"
        f"audit:\n  path: {tmp_path / 'audit.jsonl'}\n"
        "metrics:\n  port: 0\n"
        f"journal_dir: {tmp_path / 'out'}\n"
    )
    monkeypatch.setenv("POOLVAULT_CONFIG", str(cfg))
    monkeypatch.setenv("DEMO_MAIN_OPERATOR", "ops")
    monkeypatch.setattr("poolvault.main.start_server_safe", lambda port: None)
    main()
    df = pd.read_parquet(tmp_path / "out" / "journal.parquet")
    assert len(df) == 6
