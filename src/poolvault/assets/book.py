"""
In-memory asset ledger.

What it does:
- Holds integer balances (smallest asset unit) and owner -> spender allowances.
- Answers `allowance` queries and attempts `transfer` / `transfer_from` requests,
  reporting success as a bool. A request either applies fully or not at all.
- Records every request as a `TransferOutcome` so callers can audit what was
  attempted (including failed and zero-value attempts).

Where it is used:
- `poolvault.main.build_pool` wires it under a `PoolLedger` for the demo run.
- Tests use `freeze(account)` to make transfers out of an account fail even
  when balance and allowance are sufficient.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

from .model import AllowanceQuote, TransferOutcome, new_id

log = logging.getLogger("poolvault.assets")


class AssetBook:
    def __init__(self, symbol: str = "USDC", decimals: int = 6):
        self.symbol = symbol
        self._decimals = int(decimals)
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.frozen: Set[str] = set()
        self.outcomes: List[TransferOutcome] = []
        self.quotes: List[AllowanceQuote] = []

    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        amount = self.allowances.get((owner, spender), 0)
        self.quotes.append(AllowanceQuote(owner=owner, spender=spender, amount=amount))
        return amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"allowance must be unsigned, got {amount}")
        self.allowances[(owner, spender)] = int(amount)

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"mint amount must be unsigned, got {amount}")
        self.balances[account] = self.balance_of(account) + int(amount)

    def freeze(self, account: str) -> None:
        self.frozen.add(account)

    def unfreeze(self, account: str) -> None:
        self.frozen.discard(account)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        ok = self._move(sender, recipient, amount)
        self.outcomes.append(
            TransferOutcome(id=new_id(), kind="transfer", owner=sender, recipient=recipient, amount=amount, success=ok)
        )
        return ok

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        allowed = self.allowances.get((owner, spender), 0)
        ok = False
        if 0 <= amount <= allowed:
            ok = self._move(owner, recipient, amount)
            if ok:
                self.allowances[(owner, spender)] = allowed - amount
        self.outcomes.append(
            TransferOutcome(
                id=new_id(), kind="transfer_from", owner=owner, recipient=recipient,
                amount=amount, success=ok, spender=spender,
            )
        )
        return ok

    def _move(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or sender in self.frozen:
            return False
        balance = self.balance_of(sender)
        if balance < amount:
            log.debug(f"{self.symbol} transfer declined: {sender} holds {balance}, needs {amount}")
            return False
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True
