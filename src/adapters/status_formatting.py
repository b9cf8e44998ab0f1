"""Reply formatting for the admin commands.

Keeping formatting here prevents drift between commands and keeps replies
consistent.
"""

from __future__ import annotations

from core.models import QueueStats
from core.scheduler import BatchReport, SchedulerState

WELCOME_TEXT = (
    "Bot is active. Send or forward messages in bulk, and I will post them to your channel "
    "on a fixed schedule.\n\n"
    "Commands:\n"
    "/queue - Check queue status\n"
    "/status - Scheduler status\n"
    "/pause - Pause posting\n"
    "/resume - Resume posting\n"
    "/test - Process the queue now"
)

_STATE_LABELS = {
    SchedulerState.RUNNING: "✅ Running",
    SchedulerState.PAUSED: "⏸️ Paused",
    SchedulerState.STOPPED: "⏹️ Stopped",
}


def format_interval(seconds: float) -> str:
    """Return a compact human label such as "1 hour" or "30 minutes"."""

    if seconds >= 3600 and seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return f"{hours} hour" + ("s" if hours != 1 else "")
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" + ("s" if minutes != 1 else "")
    return f"{seconds:g} seconds"


def format_counts(stats: QueueStats) -> str:
    return "\n".join(
        [
            f"⏳ Pending: {stats.pending}",
            f"✅ Posted: {stats.posted}",
            f"❌ Failed: {stats.failed}",
        ]
    )


def format_settings(batch_size: int, interval: float) -> str:
    return f"⚙️ Settings: {batch_size} posts every {format_interval(interval)}"


def format_queue_status(stats: QueueStats, state: SchedulerState, batch_size: int, interval: float) -> str:
    return "\n".join(
        [
            f"📊 Queue Status: {_STATE_LABELS[state]}",
            "",
            format_counts(stats),
            "",
            format_settings(batch_size, interval),
        ]
    )


def format_scheduler_status(stats: QueueStats, state: SchedulerState, batch_size: int, interval: float) -> str:
    return "\n".join(["🤖 Scheduler Status", "", format_queue_status(stats, state, batch_size, interval)])


def format_batch_report(report: BatchReport, stats: QueueStats) -> str:
    if report.skipped:
        headline = "⏸️ Queue is paused. Nothing was posted."
    elif not report.processed:
        headline = "✅ Queue processed! Nothing was pending."
    else:
        headline = f"✅ Queue processed! Posted {report.posted}, failed {report.failed}."
    return "\n".join([headline, "", format_counts(stats)])
