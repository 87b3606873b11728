"""
Per-tutor serialization boundary for booking writes.

Slot resolution reads the tutor's booked set and then writes a new session,
so two concurrent requests for the same tutor must not interleave between
the read and the write. When ``settings.redis_url`` is configured the lock is
a Redis ``SET NX`` key shared by every worker; otherwise (or when Redis cannot
be reached) a process-local lock keyed by tutor id is used.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_LOCAL_LOCKS: Dict[str, threading.Lock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_POLL_INTERVAL_S = 0.05


def _lock_key(tutor_id: str) -> str:
    return f"tutor:{tutor_id}:booking_mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("tutor_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _get_local_lock(tutor_id: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(tutor_id)
        if lock is None:
            lock = threading.Lock()
            _LOCAL_LOCKS[tutor_id] = lock
        return lock


def reset_local_locks() -> None:
    """Drop all process-local locks. Only meant for tests."""
    with _LOCAL_LOCKS_GUARD:
        _LOCAL_LOCKS.clear()


def _acquire_redis_lock(client: Redis, tutor_id: str, ttl_s: int, wait_s: float) -> bool:
    key = _namespaced_key(_lock_key(tutor_id))
    deadline = time.monotonic() + wait_s
    while True:
        if client.set(key, str(time.time()), nx=True, ex=ttl_s):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(_POLL_INTERVAL_S)


def _release_redis_lock(client: Redis, tutor_id: str) -> None:
    try:
        deleted = client.delete(_namespaced_key(_lock_key(tutor_id)))
        prometheus_metrics.record_tutor_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_tutor_lock("release", "error")
        logger.warning(
            "tutor_lock_release_failed",
            extra={"tutor_id": tutor_id, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def tutor_lock(
    tutor_id: str, ttl_s: Optional[int] = None, wait_s: float = 5.0
) -> Iterator[bool]:
    """
    Hold the booking lock for one tutor.

    Yields True when the lock was obtained within ``wait_s`` seconds and False
    otherwise; callers treat False as a concurrent booking conflict.
    """
    ttl = ttl_s or settings.tutor_lock_ttl_seconds
    client = _get_sync_redis()

    if client is not None:
        try:
            acquired = _acquire_redis_lock(client, tutor_id, ttl, wait_s)
        except Exception as exc:
            prometheus_metrics.record_tutor_lock("acquire", "error")
            logger.warning(
                "tutor_lock_redis_failed_falling_back_to_local",
                extra={"tutor_id": tutor_id, "error": str(exc), "error_type": type(exc).__name__},
            )
            client = None
        else:
            prometheus_metrics.record_tutor_lock("acquire", "success" if acquired else "blocked")
            try:
                yield acquired
            finally:
                if acquired:
                    _release_redis_lock(client, tutor_id)
            return

    local_lock = _get_local_lock(tutor_id)
    acquired = local_lock.acquire(timeout=wait_s)
    prometheus_metrics.record_tutor_lock("acquire", "local" if acquired else "blocked")
    try:
        yield acquired
    finally:
        if acquired:
            local_lock.release()
