"""Operator authorization for state-changing pool calls."""

from .operator import OperatorGate

__all__ = ["OperatorGate"]
