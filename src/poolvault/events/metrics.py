from __future__ import annotations

from ..metrics.pool import _safe_counter

_events_total = None
_events_dropped_total = None


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("events_total", "Pool events published", ["type"])
    return _events_total


def get_events_dropped_total():
    """Counter: events that reached neither the stream nor the DLQ."""
    global _events_dropped_total
    if _events_dropped_total is None:
        _events_dropped_total = _safe_counter("events_dropped_total", "Pool events not delivered", ["type"])
    return _events_dropped_total
