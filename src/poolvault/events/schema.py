from __future__ import annotations

from typing import List, Literal, Optional
from pydantic import BaseModel


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    run_id: str = "r1"
    pool: str
    actor: Optional[str] = None
    tags: List[str] = []


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Share issuance ----

class Deposited(BaseEvent):
    event_type: Literal["deposited"] = "deposited"
    assets: int
    shares: int


class Withdrawn(BaseEvent):
    event_type: Literal["withdrawn"] = "withdrawn"
    assets: int
    shares: int


# ---- External investment ----

class Invested(BaseEvent):
    event_type: Literal["invested"] = "invested"
    source: str
    destination: str
    amount: int
    deployed_before: int
    deployed_after: int


class Redeemed(BaseEvent):
    event_type: Literal["redeemed"] = "redeemed"
    investor: str
    destination: str
    amount: int
    deployed_before: int
    deployed_after: int
    profit: int = 0


class DeployedBalanceOverridden(BaseEvent):
    event_type: Literal["deployed_balance_overridden"] = "deployed_balance_overridden"
    previous: int
    amount: int
    reason: Optional[str] = None


class OperationRejected(BaseEvent):
    event_type: Literal["operation_rejected"] = "operation_rejected"
    op: str
    reason: str
    detail: str = ""
