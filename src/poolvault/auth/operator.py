from __future__ import annotations

from typing import Optional

from ..errors import Unauthorized
from ..metrics.pool import get_unauthorized_total


class OperatorGate:
    """Single-operator capability check injected at each operation boundary.

    Fails closed: an empty or missing caller is never the operator.
    """

    def __init__(self, operator: str):
        if not operator:
            raise ValueError("operator identity must be non-empty")
        self.operator = operator
        self._denied = get_unauthorized_total()

    def is_operator(self, caller: Optional[str]) -> bool:
        return bool(caller) and caller == self.operator

    def require(self, caller: Optional[str], action: str) -> None:
        if not self.is_operator(caller):
            self._denied.labels(action).inc()
            raise Unauthorized(caller, action)
