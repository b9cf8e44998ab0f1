from __future__ import annotations

import asyncio

from adapters.bot_commands import AdminCommands, parse_command
from adapters.status_formatting import WELCOME_TEXT
from core.models import QueueStats
from core.scheduler import BatchReport, SchedulerState


class FakeScheduler:
    def __init__(self) -> None:
        self.state = SchedulerState.RUNNING
        self.batch_size = 3
        self.interval = 3600.0
        self.passes = 0

    def pause(self) -> None:
        self.state = SchedulerState.PAUSED

    def resume(self) -> None:
        self.state = SchedulerState.RUNNING

    async def process_queue(self) -> BatchReport:
        self.passes += 1
        return BatchReport(processed=1, posted=1)


class FakeQueue:
    def __init__(self, fail: bool = False) -> None:
        self._fail = fail

    async def stats(self) -> QueueStats:
        if self._fail:
            raise RuntimeError("db gone")
        return QueueStats(pending=2, posted=5, failed=0)


def test_parse_command() -> None:
    assert parse_command("/queue") == "queue"
    assert parse_command("/Status@relay_bot") == "status"
    assert parse_command("/pause now") == "pause"
    assert parse_command("/unknown") is None
    assert parse_command("hello /queue") is None
    assert parse_command("") is None


def test_pause_resume_and_status_replies() -> None:
    scheduler = FakeScheduler()
    commands = AdminCommands(scheduler, FakeQueue())

    async def scenario():
        paused = await commands.reply_for("pause")
        status = await commands.reply_for("status")
        resumed = await commands.reply_for("resume")
        queue = await commands.reply_for("queue")
        return paused, status, resumed, queue

    paused, status, resumed, queue = asyncio.run(scenario())

    assert paused.startswith("⏸️ Queue paused")
    assert status.startswith("🤖 Scheduler Status")
    assert "⏸️ Paused" in status
    assert resumed.startswith("▶️ Queue resumed")
    assert "✅ Running" in queue
    assert "⏳ Pending: 2" in queue
    assert scheduler.state == SchedulerState.RUNNING


def test_start_and_test_commands() -> None:
    scheduler = FakeScheduler()
    commands = AdminCommands(scheduler, FakeQueue())

    assert asyncio.run(commands.reply_for("start")) == WELCOME_TEXT
    reply = asyncio.run(commands.reply_for("test"))
    assert reply.startswith("✅ Queue processed! Posted 1, failed 0.")
    assert scheduler.passes == 1


def test_failures_answer_short_messages() -> None:
    commands = AdminCommands(FakeScheduler(), FakeQueue(fail=True))

    assert asyncio.run(commands.reply_for("queue")) == "Failed to fetch queue status."
    assert asyncio.run(commands.reply_for("status")) == "❌ Error fetching status."
    assert asyncio.run(commands.reply_for("test")) == "❌ Error processing queue. Check logs."


def test_admin_filter() -> None:
    open_commands = AdminCommands(FakeScheduler(), FakeQueue())
    locked = AdminCommands(FakeScheduler(), FakeQueue(), admin_user_ids=[10])

    assert open_commands.is_admin(99)
    assert locked.is_admin(10)
    assert not locked.is_admin(99)
    assert not locked.is_admin(None)
