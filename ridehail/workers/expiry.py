"""
Pending-ride Expiry Worker
==========================

Opt-in: runs only when ``PENDING_RIDE_TTL_MINUTES`` is set.  Without it,
pending rides stay open until the passenger cancels them.

Every ``EXPIRY_INTERVAL_SECONDS`` (default 60 s) the worker cancels each
pending ride older than the TTL, recording ``cancelled_by = "system"``.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance sweeps at a time
  across multiple API processes.
* The sweep is a single conditional ``UPDATE ... WHERE status = 'pending'``,
  so a ride accepted between the driver's read and the sweep is never
  cancelled out from under the driver.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from ridehail.config import settings
from ridehail.infrastructure.database import async_session_factory
from ridehail.infrastructure.locks import DistributedLock, LockNotAcquired
from ridehail.infrastructure.redis_client import get_redis
from ridehail.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


def expiry_reason(ttl_minutes: int) -> str:
    return f"Expired: no driver accepted within {ttl_minutes} minutes"


# ── Public API ────────────────────────────────────────────────────────


async def start_expiry_loop() -> None:
    global _task, _stop_event
    if not settings.pending_ride_ttl_minutes:
        logger.info("Pending-ride expiry disabled")
        return
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Expiry worker started (ttl=%dmin, interval=%ds)",
        settings.pending_ride_ttl_minutes,
        settings.expiry_interval_seconds,
    )


async def stop_expiry_loop() -> None:
    global _task, _stop_event
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        logger.info("Expiry worker stopped")
    _task = _stop_event = None


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_expiry_cycle()
        except Exception:
            logger.exception("Unhandled error in expiry cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.expiry_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_expiry_cycle(now: datetime | None = None) -> int:
    """Execute one sweep.  Returns the number of rides expired."""
    ttl = settings.pending_ride_ttl_minutes
    if not ttl:
        return 0

    redis = await get_redis()
    try:
        async with DistributedLock(redis, "ride_expiry", ttl_seconds=60):
            cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=ttl)
            async with async_session_factory() as session:
                expired = await RideRepository(session).expire_pending_before(
                    cutoff, expiry_reason(ttl)
                )
                await session.commit()
    except LockNotAcquired:
        logger.debug("Lock held by another worker, skipping sweep")
        return 0

    if expired:
        logger.info("Expiry sweep: %d pending rides cancelled", expired)
    return expired
