from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol
import uuid

RequestKind = Literal["transfer", "transfer_from"]


def new_id() -> str:
    return uuid.uuid4().hex


class AssetLedger(Protocol):
    """Allowance/transfer contract the pool needs from the underlying asset."""

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool: ...

    def decimals(self) -> int: ...


@dataclass
class TransferOutcome:
    id: str
    kind: RequestKind
    owner: str
    recipient: str
    amount: int
    success: bool
    spender: str = ""


@dataclass
class AllowanceQuote:
    owner: str
    spender: str
    amount: int
