"""Background escalation sweep loop."""

from __future__ import annotations

import asyncio
import logging

from intranet.core.config import settings
from intranet.db.session import session_scope
from intranet.services.sla.escalation import run_escalation_sweep

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None


def _run_once() -> None:
    with session_scope() as db:
        try:
            result = run_escalation_sweep(db)
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.warning("Escalation sweep failed: %s", exc)
            return
    if result["escalated"]:
        logger.info("Escalation sweep: evaluated=%s escalated=%s", result["evaluated"], result["escalated"])


async def _loop() -> None:
    startup_delay = max(0, settings.ESCALATION_SWEEP_STARTUP_DELAY_SECONDS)
    interval = max(30, settings.ESCALATION_SWEEP_INTERVAL_SECONDS)
    if startup_delay:
        await asyncio.sleep(startup_delay)
    while True:
        await asyncio.to_thread(_run_once)
        await asyncio.sleep(interval)


async def start_escalation_sweeper() -> None:
    global _task
    if _task is not None:
        return
    if not settings.ESCALATION_SWEEP_ENABLED:
        return
    _task = asyncio.create_task(_loop(), name="escalation-sweeper")
    logger.info("Escalation sweep loop started (every %s seconds)", max(30, settings.ESCALATION_SWEEP_INTERVAL_SECONDS))


async def stop_escalation_sweeper() -> None:
    global _task
    task = _task
    _task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
