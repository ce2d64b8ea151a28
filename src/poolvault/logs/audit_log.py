from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional
import logging
import time

from ..metrics.pool import _safe_counter

log = logging.getLogger("poolvault.audit")


_appends = None
_errors = None


def _get_append_counters():
    global _appends, _errors
    if _appends is None:
        _appends = _safe_counter("audit_log_appends_total", "Audit records appended", ["pool"])
        _errors = _safe_counter("audit_log_errors_total", "Audit log errors", ["reason", "pool"])
    return _appends, _errors


REQUIRED_KEYS = {"ts", "pool", "actor", "action", "previous", "amount", "reason"}


def validate_record(rec: Dict[str, Any]) -> List[str]:
    return sorted(k for k in REQUIRED_KEYS if k not in rec)


def append_jsonl(path: str, rec: Dict[str, Any]) -> bool:
    """Append one audit record as a JSON line. Returns False if it was not written."""
    pool = str(rec.get("pool", "unknown"))
    app, err = _get_append_counters()
    missing = validate_record(rec)
    if missing:
        err.labels("missing_fields", pool).inc()
        log.error(f"audit record for {pool} missing fields: {missing}")
        return False
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    except OSError as e:
        err.labels("io_error", pool).inc()
        log.error(f"audit log write to {path} failed: {e}")
        return False
    app.labels(pool).inc()
    return True


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def log_operation(
    event_type: str,
    pool: str,
    actor: Optional[str],
    amount: int,
    deployed_before: int,
    deployed_after: int,
    severity: str = "INFO",
    ts: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
    component: str = "tracker",
) -> None:
    """Emit a structured JSON log line for a pool or tracker operation.

    Keys: event, pool, actor, amount, deployed_before, deployed_after, ts,
    severity, component, schema_version. Rejected calls may carry an amount
    that is not an int; it is logged as its repr.
    """
    try:
        logger = logging.getLogger(f"poolvault.{component}")
        payload: Dict[str, Any] = {
            "event": str(event_type),
            "pool": str(pool),
            "actor": str(actor) if actor is not None else None,
            "amount": amount if isinstance(amount, int) and not isinstance(amount, bool) else repr(amount),
            "deployed_before": int(deployed_before),
            "deployed_after": int(deployed_after),
            "ts": int(ts if ts is not None else int(time.time() * 1000)),
            "severity": severity,
            "component": component,
            "schema_version": "v1",
        }
        if extra:
            payload["extra"] = extra
        logger.log(logging.getLevelName(severity), json.dumps(payload, separators=(",", ":")))
    except Exception:
        # Logging must never throw
        pass
