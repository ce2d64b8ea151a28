from __future__ import annotations

from typing import Optional


class PoolError(Exception):
    """Base error for pool and tracker operations.

    `code` is stable and used as the `reason` label on rejection metrics/events.
    """

    code = "pool_error"


class Unauthorized(PoolError):
    """Raised when the caller does not hold the operator capability."""

    code = "unauthorized"

    def __init__(self, caller: Optional[str], action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"{caller!r} is not permitted to {action}")


class InsufficientAllowance(PoolError):
    """Allowance granted by `owner` to `spender` is below the requested amount.

    Obtain more allowance and retry.
    """

    code = "insufficient_allowance"

    def __init__(self, owner: str, spender: str, required: int, available: int):
        self.owner = owner
        self.spender = spender
        self.required = required
        self.available = available
        super().__init__(
            f"allowance {owner} -> {spender} is {available}, need {required}"
        )


class TransferFailed(PoolError):
    """The asset ledger declined the transfer (e.g. balance short, account frozen)."""

    code = "transfer_failed"

    def __init__(self, owner: str, recipient: str, amount: int):
        self.owner = owner
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"transfer of {amount} from {owner} to {recipient} failed")


class InvalidAmount(PoolError):
    code = "invalid_amount"


class Overflow(PoolError):
    """Result would not fit the fixed-width unsigned range. Configuration error."""

    code = "overflow"


class InsufficientShares(PoolError):
    code = "insufficient_shares"


class InsufficientLiquidity(PoolError):
    """Withdrawal needs more assets than the pool custodies directly."""

    code = "insufficient_liquidity"


def check_unsigned(amount: int, name: str = "amount") -> int:
    """Validate an unsigned integer amount in the asset's smallest unit."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an integer in smallest units, got {amount!r}")
    if amount < 0:
        raise InvalidAmount(f"{name} must be unsigned, got {amount}")
    return amount


def check_positive(amount: int, name: str = "amount") -> int:
    check_unsigned(amount, name)
    if amount == 0:
        raise InvalidAmount(f"{name} must be greater than zero")
    return amount


def max_unsigned(width_bits: int) -> int:
    return (1 << width_bits) - 1
