from __future__ import annotations

import time
from typing import Optional

from ..assets.model import AssetLedger
from ..auth.operator import OperatorGate
from ..errors import (
    InsufficientAllowance,
    Overflow,
    PoolError,
    TransferFailed,
    check_positive,
    check_unsigned,
    max_unsigned,
)
from ..events.bus import publish as publish_event
from ..events.schema import (
    DeployedBalanceOverridden,
    EventEnvelope,
    Invested,
    OperationRejected,
    Redeemed,
)
from ..logs.audit_log import append_jsonl, log_operation
from ..metrics.pool import (
    get_balance_overrides_total,
    get_deployed_amount_gauge,
    get_invested_amount_total,
    get_operations_total,
    get_redeem_profit_total,
    get_redeemed_amount_total,
    inc_rejected,
)
from .receipt import ReceiptIssuer


class ExternalInvestmentTracker:
    """Pool-wide counter of assets currently deployed outside the pool's custody.

    `deployed_amount` is written only by `invest`, `redeem` and
    `set_deployed_balance`. Each call either applies completely or raises a
    `PoolError` with the counter untouched; the counter update is always the
    last step, after the receipt issuer (if any) accepted the change and the
    asset ledger confirmed the transfer.

    The counter is not attributed per investor: `redeem` takes an `investor`
    only to direct the returned funds, and all investors share the one balance.
    """

    def __init__(
        self,
        assets: AssetLedger,
        spender: str,
        gate: OperatorGate,
        pool_id: str = "pool",
        receipt: Optional[ReceiptIssuer] = None,
        width_bits: int = 256,
        audit_log_path: Optional[str] = None,
    ):
        self.assets = assets
        self.spender = spender
        self.gate = gate
        self.pool_id = pool_id
        self.receipt = receipt
        self.max_amount = max_unsigned(width_bits)
        self.audit_log_path = audit_log_path
        self._deployed = 0
        self._sequence = 0
        self._ops = get_operations_total()
        self._deployed_gauge = get_deployed_amount_gauge()
        self._deployed_gauge.labels(pool_id).set(0)

    @property
    def deployed_amount(self) -> int:
        return self._deployed

    def total_deployed(self) -> int:
        return self._deployed

    # ---- operations ----

    def invest(self, caller: str, source: str, destination: str, amount: int) -> None:
        """Move `amount` from `source` to `destination` and track it as deployed.

        A zero amount is accepted and results in a zero-value transfer attempt.
        """
        try:
            self.gate.require(caller, "invest")
            check_unsigned(amount)
            self._require_allowance(source, amount)
            if self._deployed + amount > self.max_amount:
                raise Overflow(f"deployed amount would exceed {self.max_amount}")
            if self.receipt is not None:
                self.receipt.check_issue(self.spender, amount)
            if not self.assets.transfer_from(self.spender, source, destination, amount):
                raise TransferFailed(source, destination, amount)
        except PoolError as e:
            self._rejected("invest", caller, amount, e)
            raise
        before = self._deployed
        if self.receipt is not None:
            self.receipt.issue(self.spender, amount)
        self._deployed = before + amount
        get_invested_amount_total().labels(self.pool_id).inc(amount)
        self._applied("invest", caller, amount, before)
        self._publish(Invested(
            ts=self._now(), pool=self.pool_id, actor=caller, source=source, destination=destination,
            amount=amount, deployed_before=before, deployed_after=self._deployed,
        ))

    def redeem(self, caller: str, investor: str, destination: str, amount: int) -> int:
        """Pull `amount` back from `destination` to `investor`.

        If the tracked balance exceeds `amount` it is reduced by `amount`;
        otherwise the position is closed to zero and any excess is profit
        absorbed into total assets. Returns that profit.
        """
        before = self._deployed
        try:
            self.gate.require(caller, "redeem")
            check_positive(amount)
            self._require_allowance(destination, amount)
            if before > amount:
                after = before - amount
                profit = 0
            else:
                after = 0
                profit = amount - before
            if self.receipt is not None:
                self.receipt.check_retire(self.spender, before - after)
            if not self.assets.transfer_from(self.spender, destination, investor, amount):
                raise TransferFailed(destination, investor, amount)
        except PoolError as e:
            self._rejected("redeem", caller, amount, e)
            raise
        if self.receipt is not None:
            self.receipt.retire(self.spender, before - after)
        self._deployed = after
        get_redeemed_amount_total().labels(self.pool_id).inc(amount)
        if profit:
            get_redeem_profit_total().labels(self.pool_id).inc(profit)
        self._applied("redeem", caller, amount, before, extra={"profit": profit} if profit else None)
        self._publish(Redeemed(
            ts=self._now(), pool=self.pool_id, actor=caller, investor=investor, destination=destination,
            amount=amount, deployed_before=before, deployed_after=after, profit=profit,
        ))
        return profit

    def set_deployed_balance(self, caller: str, amount: int, reason: Optional[str] = None) -> None:
        """Overwrite the deployed balance without moving any assets.

        Corrective escape hatch outside the transfer-coupled flow. Every call is
        written to the audit log (when configured) and logged at WARNING.
        """
        before = self._deployed
        try:
            self.gate.require(caller, "set_deployed_balance")
            check_positive(amount)
            if amount > self.max_amount:
                raise Overflow(f"deployed amount cannot exceed {self.max_amount}")
            if self.receipt is not None:
                if amount > before:
                    self.receipt.check_issue(self.spender, amount - before)
                else:
                    self.receipt.check_retire(self.spender, before - amount)
        except PoolError as e:
            self._rejected("set_deployed_balance", caller, amount, e)
            raise
        ts = self._now()
        if self.receipt is not None:
            if amount > before:
                self.receipt.issue(self.spender, amount - before)
            else:
                self.receipt.retire(self.spender, before - amount)
        self._deployed = amount
        get_balance_overrides_total().labels(self.pool_id).inc()
        if self.audit_log_path:
            append_jsonl(self.audit_log_path, {
                "ts": ts,
                "pool": self.pool_id,
                "actor": caller,
                "action": "set_deployed_balance",
                "previous": before,
                "amount": amount,
                "reason": reason,
            })
        self._applied("set_deployed_balance", caller, amount, before, severity="WARNING")
        self._publish(DeployedBalanceOverridden(
            ts=ts, pool=self.pool_id, actor=caller, previous=before, amount=amount, reason=reason,
        ))

    # ---- helpers ----

    def _require_allowance(self, owner: str, amount: int) -> None:
        available = self.assets.allowance(owner, self.spender)
        if available < amount:
            raise InsufficientAllowance(owner, self.spender, amount, available)

    def _now(self) -> int:
        return int(time.time() * 1000)

    def _applied(self, op: str, caller: str, amount: int, before: int, severity: str = "INFO", extra=None) -> None:
        self._ops.labels(self.pool_id, op).inc()
        self._deployed_gauge.labels(self.pool_id).set(self._deployed)
        log_operation(op, self.pool_id, caller, amount, before, self._deployed, severity=severity, extra=extra)

    def _rejected(self, op: str, caller: str, amount, err: PoolError) -> None:
        inc_rejected(self.pool_id, op, err.code)
        log_operation(
            op, self.pool_id, caller, amount, self._deployed, self._deployed,
            severity="WARNING", extra={"rejected": err.code, "detail": str(err)},
        )
        self._publish(OperationRejected(
            ts=self._now(), pool=self.pool_id, actor=caller, op=op, reason=err.code, detail=str(err),
        ))

    def _publish(self, event) -> None:
        self._sequence += 1
        publish_event(EventEnvelope(
            correlation_id=f"{self.pool_id}:{event.event_type}", sequence=self._sequence, event=event,
        ))
