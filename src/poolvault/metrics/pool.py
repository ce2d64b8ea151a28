from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_operations_total: Optional[Counter] = None
_operations_rejected: Optional[Counter] = None
_invested_amount_total: Optional[Counter] = None
_redeemed_amount_total: Optional[Counter] = None
_redeem_profit_total: Optional[Counter] = None
_balance_overrides_total: Optional[Counter] = None
_unauthorized_total: Optional[Counter] = None
_deployed_amount: Optional[Gauge] = None
_total_assets: Optional[Gauge] = None
_share_supply: Optional[Gauge] = None
_share_price: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _find_existing(name: str, kind):
    # Counters register as `<name>` without the `_total` suffix
    base = name[:-6] if name.endswith("_total") else name
    for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
        if isinstance(coll, kind) and getattr(coll, "_name", None) in (name, base):
            return coll
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        coll = _find_existing(name, Counter)
        return coll if coll is not None else _NoOp()


def _safe_gauge_labels(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _find_existing(name, Gauge)
        return coll if coll is not None else _NoOp()


def get_operations_total():
    global _operations_total
    if _operations_total is None:
        _operations_total = _safe_counter("pool_operations_total", "Pool operations applied", ["pool", "op"])
    return _operations_total


def get_operations_rejected_total():
    global _operations_rejected
    if _operations_rejected is None:
        _operations_rejected = _safe_counter(
            "pool_operations_rejected_total", "Pool operations rejected", ["pool", "op", "reason"]
        )
    return _operations_rejected


def get_invested_amount_total():
    """Counter: smallest asset units moved out by `invest`."""
    global _invested_amount_total
    if _invested_amount_total is None:
        _invested_amount_total = _safe_counter("pool_invested_amount_total", "Assets invested externally", ["pool"])
    return _invested_amount_total


def get_redeemed_amount_total():
    global _redeemed_amount_total
    if _redeemed_amount_total is None:
        _redeemed_amount_total = _safe_counter("pool_redeemed_amount_total", "Assets returned by redeem", ["pool"])
    return _redeemed_amount_total


def get_redeem_profit_total():
    """Counter: redeemed amount in excess of the tracked deployed balance."""
    global _redeem_profit_total
    if _redeem_profit_total is None:
        _redeem_profit_total = _safe_counter("pool_redeem_profit_total", "Profit absorbed on redeem", ["pool"])
    return _redeem_profit_total


def get_balance_overrides_total():
    global _balance_overrides_total
    if _balance_overrides_total is None:
        _balance_overrides_total = _safe_counter(
            "pool_balance_overrides_total", "Deployed balance overrides", ["pool"]
        )
    return _balance_overrides_total


def get_unauthorized_total():
    global _unauthorized_total
    if _unauthorized_total is None:
        _unauthorized_total = _safe_counter("pool_unauthorized_total", "Operator checks failed", ["action"])
    return _unauthorized_total


def get_deployed_amount_gauge():
    global _deployed_amount
    if _deployed_amount is None:
        _deployed_amount = _safe_gauge_labels("pool_deployed_amount", "Assets deployed externally", ["pool"])
    return _deployed_amount


def get_total_assets_gauge():
    global _total_assets
    if _total_assets is None:
        _total_assets = _safe_gauge_labels("pool_total_assets", "Custodied plus deployed assets", ["pool"])
    return _total_assets


def get_share_supply_gauge():
    global _share_supply
    if _share_supply is None:
        _share_supply = _safe_gauge_labels("pool_share_supply", "Outstanding pool shares", ["pool"])
    return _share_supply


def get_share_price_gauge():
    global _share_price
    if _share_price is None:
        _share_price = _safe_gauge_labels("pool_share_price", "Assets per share (display units)", ["pool"])
    return _share_price


def inc_rejected(pool: str, op: str, reason: str) -> None:
    try:
        get_operations_rejected_total().labels(pool, op, reason).inc()
    except Exception:
        pass
