import socket

from prometheus_client import REGISTRY

from poolvault.assets.book import AssetBook
from poolvault.auth import OperatorGate
from poolvault.ledger import PoolLedger
from poolvault.metrics.core import start_server_safe
from poolvault.metrics.pool import _safe_counter, get_operations_total

OP = "operator"
POOL = "pool:m"


def _sample(metric: str, labels: dict) -> float:
    val = REGISTRY.get_sample_value(metric, labels)
    return 0.0 if val is None else float(val)


def test_invest_and_redeem_amount_counters():
    book = AssetBook()
    pool = PoolLedger(book, POOL, OperatorGate(OP), pool_id="t-metrics")
    labels = {"pool": "t-metrics"}
    invested = _sample("pool_invested_amount_total", labels)
    redeemed = _sample("pool_redeemed_amount_total", labels)
    profit = _sample("pool_redeem_profit_total", labels)
    ops = _sample("pool_operations_total", {"pool": "t-metrics", "op": "redeem"})

    book.mint(POOL, 100)
    book.approve(POOL, POOL, 100)
    pool.invest(OP, POOL, "venue", 100)
    book.mint("venue", 25)
    book.approve("venue", POOL, 125)
    pool.redeem(OP, POOL, "venue", 125)

    assert _sample("pool_invested_amount_total", labels) == invested + 100
    assert _sample("pool_redeemed_amount_total", labels) == redeemed + 125
    assert _sample("pool_redeem_profit_total", labels) == profit + 25
    assert _sample("pool_operations_total", {"pool": "t-metrics", "op": "redeem"}) == ops + 1
    assert _sample("pool_deployed_amount", labels) == 0.0
    assert _sample("pool_total_assets", labels) == 125.0


def test_deployed_gauge_follows_override():
    pool = PoolLedger(AssetBook(), POOL, OperatorGate(OP), pool_id="t-metrics-gauge")
    pool.set_deployed_balance(OP, 900)
    assert _sample("pool_deployed_amount", {"pool": "t-metrics-gauge"}) == 900.0
    assert _sample("pool_balance_overrides_total", {"pool": "t-metrics-gauge"}) >= 1.0


def test_safe_counter_returns_existing_collector():
    first = get_operations_total()
    again = _safe_counter("pool_operations_total", "dup", ["pool", "op"])
    assert again is first


def test_start_server_safe_tolerates_bound_port():
    with socket.socket() as s:
        s.bind(("0.0.0.0", 0))
        s.listen(1)
        port = s.getsockname()[1]
        assert start_server_safe(port) is None
