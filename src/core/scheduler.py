"""Queue scheduler: drain the post queue at a fixed cadence.

Every ``interval`` seconds at most ``batch_size`` pending entries are
published, oldest first. A large backlog drains over more intervals; the
rate never adapts.

States: stopped -> running <-> paused. Pausing keeps the timer armed and
turns ticks into no-ops; stopping tears the timer down.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import SchedulerConfig
from core.models import QueueEntry, QueueStats
from core.ports import PublisherPort
from core.post_queue import PostQueue

LOGGER = logging.getLogger(__name__)

JOB_ID = "process_queue"


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class BatchReport:
    """Outcome of one processing pass."""

    processed: int = 0
    posted: int = 0
    failed: int = 0
    skipped: bool = False
    stats: Optional[QueueStats] = None


class QueueScheduler:
    """Timer-driven consumer of the durable post queue.

    One instance is built at startup and handed to whatever needs it (the
    admin command handlers); there is no module-level singleton.
    """

    def __init__(self, queue: PostQueue, publisher: PublisherPort, config: SchedulerConfig) -> None:
        self._queue = queue
        self._publisher = publisher
        self._config = config
        self._state = SchedulerState.STOPPED
        self._timer: Optional[AsyncIOScheduler] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    @property
    def has_timer(self) -> bool:
        return self._timer is not None

    @property
    def batch_size(self) -> int:
        return self._config.batch_size

    @property
    def interval(self) -> float:
        return self._config.interval

    def start(self) -> None:
        """Arm the interval timer; the first pass runs immediately."""

        if self._timer is not None:
            LOGGER.info("Queue scheduler is already running.")
            return
        self._state = SchedulerState.RUNNING
        self._arm_timer()
        LOGGER.info(
            "Queue scheduler started. Posting %s messages every %s minutes.",
            self.batch_size,
            _minutes(self.interval),
        )

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.shutdown(wait=False)
            self._timer = None
        self._state = SchedulerState.STOPPED
        LOGGER.info("Queue scheduler stopped.")

    def pause(self) -> None:
        self._state = SchedulerState.PAUSED
        LOGGER.info("Queue scheduler paused.")

    def resume(self) -> None:
        was_paused = self._state != SchedulerState.RUNNING
        self._state = SchedulerState.RUNNING
        if self._timer is None:
            LOGGER.info("Resume requested: no active timer found, creating one now.")
            self._arm_timer()
        LOGGER.info("Queue scheduler resumed." if was_paused else "Queue scheduler already running.")

    def _arm_timer(self) -> None:
        timer = AsyncIOScheduler(timezone="UTC")
        timer.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=max(self.interval, 0.001)),
            id=JOB_ID,
            name="Relay: process queue",
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        timer.start()
        self._timer = timer

    async def _tick(self) -> None:
        try:
            await self.process_queue()
        except Exception:
            LOGGER.exception("Queue processing error")

    async def process_queue(self) -> BatchReport:
        """Publish one batch of pending entries.

        A failed publish marks only that entry as failed; the rest of the
        batch still goes out.
        """

        if self._state == SchedulerState.PAUSED:
            LOGGER.info("Queue scheduler is paused. Skipping this cycle.")
            return BatchReport(skipped=True)

        async with self._lock:
            entries = await self._queue.peek_pending(self.batch_size)
            if not entries:
                LOGGER.info("No pending messages in queue.")
                return BatchReport()

            LOGGER.info("Processing %s messages from queue...", len(entries))
            posted = failed = 0
            for index, entry in enumerate(entries):
                if index and self._config.min_post_interval > 0:
                    await asyncio.sleep(self._config.min_post_interval)
                if await self._publish_entry(entry):
                    posted += 1
                else:
                    failed += 1

            stats = await self._queue.stats()
            LOGGER.info(
                "Queue stats - Pending: %s, Posted: %s, Failed: %s",
                stats.pending,
                stats.posted,
                stats.failed,
            )
            return BatchReport(processed=len(entries), posted=posted, failed=failed, stats=stats)

    async def _publish_entry(self, entry: QueueEntry) -> bool:
        try:
            outcome = await self._publisher.publish(entry.item)
        except Exception as exc:
            LOGGER.exception("Failed to post message %s", entry.id)
            await self._queue.mark_failed(entry.id, str(exc) or exc.__class__.__name__)
            return False

        if not getattr(outcome, "ok", True):
            error = getattr(outcome, "error", None) or "Unknown error"
            LOGGER.warning("Message %s was not posted: %s", entry.id, error)
            await self._queue.mark_failed(entry.id, error)
            return False

        await self._queue.mark_posted(entry.id)
        LOGGER.info("Successfully posted message %s", entry.id)
        return True


def _minutes(seconds: float) -> str:
    minutes = seconds / 60
    return f"{minutes:g}"
