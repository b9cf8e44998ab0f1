from __future__ import annotations

import asyncio

from adapters.sqlite_storage import SQLiteStorage
from core.config import SchedulerConfig
from core.models import PostItem, PostKind, QueueStats, QueueStatus, SourceMeta
from core.post_queue import PostQueue
from core.publisher import PublishOutcome
from core.scheduler import QueueScheduler, SchedulerState


class FakePublisher:
    def __init__(self, fail_texts: "set[str] | None" = None, reject_texts: "set[str] | None" = None) -> None:
        self.published: list[str] = []
        self._fail = fail_texts or set()
        self._reject = reject_texts or set()

    async def publish(self, item: PostItem) -> PublishOutcome:
        if item.text in self._fail:
            raise RuntimeError(f"cannot post {item.text}")
        if item.text in self._reject:
            return PublishOutcome.rejected("Unsupported type")
        self.published.append(item.text)
        return PublishOutcome.success({"ok": True})


def _setup(tmp_path, publisher: FakePublisher, **config) -> tuple[QueueScheduler, PostQueue, SQLiteStorage]:
    storage = SQLiteStorage(str(tmp_path / "relay.db"))
    storage.init_db()
    queue = PostQueue(storage)
    scheduler = QueueScheduler(queue, publisher, SchedulerConfig(**config))
    return scheduler, queue, storage


async def _fill(queue: PostQueue, *bodies: str) -> None:
    for body in bodies:
        await queue.enqueue(PostItem(source=SourceMeta(title="News"), kind=PostKind.TEXT, text=body))


def test_batch_isolates_failures(tmp_path) -> None:
    publisher = FakePublisher(fail_texts={"two"})
    scheduler, queue, storage = _setup(tmp_path, publisher, batch_size=3)

    async def scenario():
        await _fill(queue, "one", "two", "three", "four")
        return await scheduler.process_queue()

    report = asyncio.run(scenario())

    assert publisher.published == ["one", "three"]
    assert (report.processed, report.posted, report.failed) == (3, 2, 1)
    assert report.stats == QueueStats(pending=1, posted=2, failed=1)

    failed = storage.select_entries(QueueStatus.FAILED, 10)
    assert failed[0].item.text == "two"
    assert failed[0].error_message == "cannot post two"


def test_rejected_outcome_marks_failed(tmp_path) -> None:
    publisher = FakePublisher(reject_texts={"bad"})
    scheduler, queue, storage = _setup(tmp_path, publisher)

    async def scenario():
        await _fill(queue, "bad")
        return await scheduler.process_queue()

    report = asyncio.run(scenario())

    assert report.failed == 1
    assert storage.select_entries(QueueStatus.FAILED, 10)[0].error_message == "Unsupported type"


def test_empty_queue_is_a_noop(tmp_path) -> None:
    scheduler, _, _ = _setup(tmp_path, FakePublisher())

    report = asyncio.run(scheduler.process_queue())

    assert report.processed == 0
    assert not report.skipped


def test_paused_timer_ticks_change_nothing(tmp_path) -> None:
    publisher = FakePublisher()
    scheduler, queue, _ = _setup(tmp_path, publisher, interval=0.05)

    async def scenario():
        scheduler.start()
        scheduler.pause()
        await _fill(queue, "one")
        await asyncio.sleep(0.3)
        pending_while_paused = (await queue.stats()).pending
        scheduler.resume()
        await asyncio.sleep(0.3)
        scheduler.stop()
        return pending_while_paused, await queue.stats()

    pending_while_paused, stats = asyncio.run(scenario())

    assert pending_while_paused == 1
    assert stats.posted == 1
    assert publisher.published == ["one"]


def test_pause_skips_and_resume_continues(tmp_path) -> None:
    publisher = FakePublisher()
    scheduler, queue, _ = _setup(tmp_path, publisher)

    async def scenario():
        await _fill(queue, "one")
        scheduler.pause()
        paused = await scheduler.process_queue()
        pending_while_paused = (await queue.stats()).pending
        # No timer exists yet, so resume arms one with an immediate pass.
        scheduler.resume()
        await asyncio.sleep(0.5)
        scheduler.stop()
        return paused, pending_while_paused, await queue.stats()

    paused, pending_while_paused, stats = asyncio.run(scenario())

    assert paused.skipped
    assert pending_while_paused == 1
    assert stats == QueueStats(pending=0, posted=1, failed=0)
    assert publisher.published == ["one"]


def test_start_runs_first_pass_immediately_and_stop_clears_timer(tmp_path) -> None:
    publisher = FakePublisher()
    scheduler, queue, _ = _setup(tmp_path, publisher, batch_size=2, interval=3600.0)

    async def scenario():
        await _fill(queue, "one", "two", "three")
        scheduler.start()
        scheduler.start()
        assert scheduler.is_running
        assert scheduler.has_timer
        await asyncio.sleep(0.5)
        scheduler.stop()
        return await queue.stats()

    stats = asyncio.run(scenario())

    assert publisher.published == ["one", "two"]
    assert stats.pending == 1
    assert scheduler.state == SchedulerState.STOPPED
    assert not scheduler.has_timer


def test_resume_after_stop_rearms_timer(tmp_path) -> None:
    scheduler, _, _ = _setup(tmp_path, FakePublisher())

    async def scenario() -> None:
        scheduler.start()
        scheduler.stop()
        assert not scheduler.has_timer
        scheduler.resume()
        assert scheduler.has_timer
        assert scheduler.state == SchedulerState.RUNNING
        scheduler.stop()

    asyncio.run(scenario())


def test_min_post_interval_spaces_publishes(tmp_path) -> None:
    publisher = FakePublisher()
    scheduler, queue, _ = _setup(tmp_path, publisher, min_post_interval=0.05)

    async def scenario() -> float:
        await _fill(queue, "one", "two", "three")
        loop = asyncio.get_running_loop()
        started = loop.time()
        await scheduler.process_queue()
        return loop.time() - started

    elapsed = asyncio.run(scenario())

    assert publisher.published == ["one", "two", "three"]
    assert elapsed >= 0.1
