from __future__ import annotations

from typing import Protocol

from ..errors import InvalidAmount, Overflow, Unauthorized, check_unsigned, max_unsigned


class ReceiptIssuer(Protocol):
    """Receipt supply moved alongside the deployed amount.

    `check_issue` / `check_retire` raise exactly what `issue` / `retire` would,
    without changing anything, so callers can validate before moving assets.
    """

    def check_issue(self, caller: str, amount: int) -> None: ...

    def check_retire(self, caller: str, amount: int) -> None: ...

    def issue(self, caller: str, amount: int) -> None: ...

    def retire(self, caller: str, amount: int) -> None: ...


class ReceiptToken:
    """On-ledger receipt for externally deployed capital.

    The whole supply sits with `owner` (the pool account) and only the owner
    may issue or retire it.
    """

    def __init__(self, owner: str, symbol: str = "rcpt", width_bits: int = 256):
        self.owner = owner
        self.symbol = symbol
        self.max_supply = max_unsigned(width_bits)
        self.total_supply = 0

    def balance_of(self, account: str) -> int:
        return self.total_supply if account == self.owner else 0

    def _require_owner(self, caller: str, action: str) -> None:
        if caller != self.owner:
            raise Unauthorized(caller, f"{action} {self.symbol}")

    def check_issue(self, caller: str, amount: int) -> None:
        self._require_owner(caller, "issue")
        check_unsigned(amount)
        if self.total_supply + amount > self.max_supply:
            raise Overflow(f"{self.symbol} supply would exceed {self.max_supply}")

    def check_retire(self, caller: str, amount: int) -> None:
        self._require_owner(caller, "retire")
        check_unsigned(amount)
        if amount > self.total_supply:
            raise InvalidAmount(f"cannot retire {amount} {self.symbol}, supply is {self.total_supply}")

    def issue(self, caller: str, amount: int) -> None:
        self.check_issue(caller, amount)
        self.total_supply += amount

    def retire(self, caller: str, amount: int) -> None:
        self.check_retire(caller, amount)
        self.total_supply -= amount
