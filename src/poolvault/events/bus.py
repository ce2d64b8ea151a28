from __future__ import annotations

import json
import os
import logging

import redis

from .schema import EventEnvelope
from .metrics import get_events_total, get_events_dropped_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "poolvault.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "poolvault.dlq")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

log = logging.getLogger("poolvault.events")


def _get_redis():
    return redis.Redis.from_url(REDIS_URL, decode_responses=True, socket_connect_timeout=0.5)


def encode(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Publish an event to Redis Streams and log a single-line JSON for Loki.

    Ledger state is already committed when this runs, so delivery errors are
    logged and counted instead of raised.
    """
    event_type = env.event.event_type
    get_events_total().labels(event_type).inc()

    line = encode(env)
    try:
        r = _get_redis()
        r.xadd(STREAM_EVENTS, {"json": line})
    except redis.RedisError as e:
        try:
            r = _get_redis()
            r.xadd(STREAM_DLQ, {"json": line})
        except redis.RedisError:
            get_events_dropped_total().labels(event_type).inc()
            log.debug(f"event stream unavailable, {event_type} not delivered: {e}")
    # Always log for Loki ingestion
    log.info(line)


def ensure_group(group: str) -> None:
    try:
        r = _get_redis()
        r.xgroup_create(name=STREAM_EVENTS, groupname=group, id="$", mkstream=True)
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def consume(group: str, consumer: str, block_ms: int = 15000):
    """Generator yielding (id, json_str) from Redis Stream consumer group.

    Caller is responsible for acknowledging XACK.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {STREAM_EVENTS: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        # resp is list[(stream, [(id, {field:value}), ...])]
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, fields.get("json", ""))
