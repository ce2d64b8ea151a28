from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

Action = Literal["deposit", "withdraw", "invest", "redeem", "set_deployed_balance"]


@dataclass
class JournalRow:
    ts: int
    action: Action
    actor: str
    amount: int
    shares: int
    deployed: int
    custodied: int
    total_assets: int
    total_supply: int
    share_price: float
    counterparty: Optional[str] = None


@dataclass
class PoolSnapshot:
    pool: str
    account: str
    custodied: int
    deployed: int
    total_assets: int
    total_supply: int
    share_price: float
    receipt_supply: Optional[int] = None
