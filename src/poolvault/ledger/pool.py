from __future__ import annotations

import os
import time
from typing import Dict, List, Optional

import pandas as pd

from ..assets.model import AssetLedger
from ..auth.operator import OperatorGate
from ..errors import (
    InsufficientAllowance,
    InsufficientLiquidity,
    InsufficientShares,
    InvalidAmount,
    Overflow,
    PoolError,
    TransferFailed,
    check_positive,
    max_unsigned,
)
from ..events.bus import publish as publish_event
from ..events.schema import Deposited, EventEnvelope, OperationRejected, Withdrawn
from ..logs.audit_log import log_operation
from ..metrics.pool import (
    get_operations_total,
    get_share_price_gauge,
    get_share_supply_gauge,
    get_total_assets_gauge,
    inc_rejected,
)
from ..tracker.receipt import ReceiptIssuer
from ..tracker.tracker import ExternalInvestmentTracker
from .model import JournalRow, PoolSnapshot


class PoolLedger:
    """Share-issuing pool over a single asset account.

    Total assets are the balance custodied at `account` plus whatever the
    tracker records as deployed externally, so share price is computed over
    logical rather than physically held assets. Conversions round down in the
    pool's favour with a virtual offset of one share and one asset unit.
    """

    def __init__(
        self,
        assets: AssetLedger,
        account: str,
        gate: OperatorGate,
        pool_id: str = "pool",
        receipt: Optional[ReceiptIssuer] = None,
        width_bits: int = 256,
        audit_log_path: Optional[str] = None,
    ):
        self.assets = assets
        self.account = account
        self.pool_id = pool_id
        self.max_supply = max_unsigned(width_bits)
        self.tracker = ExternalInvestmentTracker(
            assets, account, gate, pool_id=pool_id, receipt=receipt,
            width_bits=width_bits, audit_log_path=audit_log_path,
        )
        self.shares: Dict[str, int] = {}
        self.total_supply = 0
        self.rows: List[JournalRow] = []
        self._scale = 10 ** int(assets.decimals())
        self._ops = get_operations_total()
        self._total_assets_gauge = get_total_assets_gauge()
        self._supply_gauge = get_share_supply_gauge()
        self._price_gauge = get_share_price_gauge()
        self._update_gauges()

    # ---- views ----

    def custodied(self) -> int:
        return self.assets.balance_of(self.account)

    def total_assets(self) -> int:
        return self.custodied() + self.tracker.total_deployed()

    def balance_of(self, holder: str) -> int:
        return self.shares.get(holder, 0)

    def convert_to_shares(self, assets: int) -> int:
        return assets * (self.total_supply + 1) // (self.total_assets() + 1)

    def convert_to_assets(self, shares: int) -> int:
        return shares * (self.total_assets() + 1) // (self.total_supply + 1)

    def share_price(self) -> float:
        """Assets per whole share, in display units (shares use the asset's decimals)."""
        return (self.total_assets() + 1) / (self.total_supply + 1)

    def to_display(self, amount: int) -> float:
        return amount / self._scale

    def snapshot(self) -> PoolSnapshot:
        receipt = self.tracker.receipt
        return PoolSnapshot(
            pool=self.pool_id,
            account=self.account,
            custodied=self.custodied(),
            deployed=self.tracker.total_deployed(),
            total_assets=self.total_assets(),
            total_supply=self.total_supply,
            share_price=self.share_price(),
            receipt_supply=getattr(receipt, "total_supply", None),
        )

    # ---- share issuance ----

    def deposit(self, caller: str, assets: int) -> int:
        """Take `assets` from `caller` and mint shares at the prevailing price."""
        try:
            check_positive(assets)
            shares = self.convert_to_shares(assets)
            if shares == 0:
                raise InvalidAmount(f"deposit of {assets} is too small to mint a share")
            if self.total_supply + shares > self.max_supply:
                raise Overflow(f"share supply would exceed {self.max_supply}")
            available = self.assets.allowance(caller, self.account)
            if available < assets:
                raise InsufficientAllowance(caller, self.account, assets, available)
            if not self.assets.transfer_from(self.account, caller, self.account, assets):
                raise TransferFailed(caller, self.account, assets)
        except PoolError as e:
            self._rejected("deposit", caller, e, amount=assets)
            raise
        self.shares[caller] = self.balance_of(caller) + shares
        self.total_supply += shares
        self._record("deposit", caller, assets, shares)
        self._publish(Deposited(ts=self._now(), pool=self.pool_id, actor=caller, assets=assets, shares=shares))
        return shares

    def withdraw(self, caller: str, shares: int) -> int:
        """Burn `shares` held by `caller` and pay out their assets from custody.

        Assets deployed externally count towards the price but cannot be paid
        out until redeemed.
        """
        try:
            check_positive(shares, "shares")
            held = self.balance_of(caller)
            if held < shares:
                raise InsufficientShares(f"{caller} holds {held} shares, cannot withdraw {shares}")
            assets = self.convert_to_assets(shares)
            if assets == 0:
                raise InvalidAmount(f"withdrawal of {shares} shares is worth nothing")
            custodied = self.custodied()
            if assets > custodied:
                raise InsufficientLiquidity(f"need {assets} but pool custodies {custodied}")
            if not self.assets.transfer(self.account, caller, assets):
                raise TransferFailed(self.account, caller, assets)
        except PoolError as e:
            self._rejected("withdraw", caller, e, shares=shares)
            raise
        self.shares[caller] = held - shares
        self.total_supply -= shares
        self._record("withdraw", caller, assets, shares)
        self._publish(Withdrawn(ts=self._now(), pool=self.pool_id, actor=caller, assets=assets, shares=shares))
        return assets

    # ---- external investment (operator only) ----

    def invest(self, caller: str, source: str, destination: str, amount: int) -> None:
        self.tracker.invest(caller, source, destination, amount)
        self._record("invest", caller, amount, 0, counterparty=destination)

    def redeem(self, caller: str, investor: str, destination: str, amount: int) -> int:
        profit = self.tracker.redeem(caller, investor, destination, amount)
        self._record("redeem", caller, amount, 0, counterparty=destination)
        return profit

    def set_deployed_balance(self, caller: str, amount: int, reason: Optional[str] = None) -> None:
        self.tracker.set_deployed_balance(caller, amount, reason=reason)
        self._record("set_deployed_balance", caller, amount, 0)

    # ---- journal ----

    def _record(self, action, actor: str, amount: int, shares: int, counterparty: Optional[str] = None) -> None:
        custodied = self.custodied()
        deployed = self.tracker.total_deployed()
        if action in ("deposit", "withdraw"):
            self._ops.labels(self.pool_id, action).inc()
            log_operation(
                action, self.pool_id, actor, amount, deployed, deployed,
                extra={"shares": shares, "total_supply": self.total_supply}, component="pool",
            )
        self._update_gauges()
        self.rows.append(JournalRow(
            ts=self._now(), action=action, actor=actor, amount=amount, shares=shares,
            deployed=deployed, custodied=custodied, total_assets=custodied + deployed,
            total_supply=self.total_supply, share_price=self.share_price(), counterparty=counterparty,
        ))

    def write_parquet(self, base_dir: str = "data") -> str:
        os.makedirs(base_dir, exist_ok=True)
        path = os.path.join(base_dir, "journal.parquet")
        journal_df = pd.DataFrame([r.__dict__ for r in self.rows])
        journal_df.to_parquet(path)
        return path

    def _update_gauges(self) -> None:
        self._total_assets_gauge.labels(self.pool_id).set(self.total_assets())
        self._supply_gauge.labels(self.pool_id).set(self.total_supply)
        self._price_gauge.labels(self.pool_id).set(self.share_price())

    def _rejected(self, op: str, caller: str, err: PoolError, amount=0, shares=None) -> None:
        inc_rejected(self.pool_id, op, err.code)
        extra = {"rejected": err.code, "detail": str(err)}
        if shares is not None:
            extra["shares"] = shares if type(shares) is int else repr(shares)
        deployed = self.tracker.total_deployed()
        log_operation(op, self.pool_id, caller, amount, deployed, deployed, extra=extra, component="pool")
        self._publish(OperationRejected(
            ts=self._now(), pool=self.pool_id, actor=caller, op=op, reason=err.code, detail=str(err),
        ))

    def _publish(self, event) -> None:
        publish_event(EventEnvelope(correlation_id=f"{self.pool_id}:{event.event_type}", event=event))

    def _now(self) -> int:
        return int(time.time() * 1000)
