"""
Task and Event Alert Scheduler

Once a minute, re-reads tasks and events from Trilium and sends a Telegram
alert when an item is exactly one of the configured lead times away.
"""
import logging
import time
from datetime import datetime, timedelta
from typing import List, Optional
from apscheduler.schedulers.background import BackgroundScheduler

from .config import RelayConfig
from .enums import DueSource
from .metrics import ALERTS_SENT, POLL_FAILURES, POLL_LATENCY
from .models import DueItem, task_due_item, event_due_item
from .processors.apis import TriliumClient
from .scheduler_config import (
    ALERT_THRESHOLDS,
    REMINDER_THRESHOLD,
    UPCOMING_LIMIT,
)
from .send import TelegramClient, escape_markdown
from .timeutils import format_duration, local_now, local_timezone

logger = logging.getLogger(__name__)


def minutes_remaining(due: datetime, now: datetime) -> int:
    """Whole minutes until `due`, rounded down."""
    return int((due - now) // timedelta(minutes=1))


def should_fire(minutes: int, is_reminder: bool) -> bool:
    if is_reminder:
        return minutes == REMINDER_THRESHOLD
    return minutes in ALERT_THRESHOLDS


def format_alert(item: DueItem, minutes: int) -> str:
    return f"⏰ {escape_markdown(format_duration(minutes))}: {escape_markdown(item.title)}"


def _task_items(backend: TriliumClient) -> Optional[List[DueItem]]:
    tasks = backend.get_tasks()
    if tasks is None:
        return None

    items = []
    for task in tasks:
        try:
            item = task_due_item(task)
        except ValueError as e:
            logger.warning(f"Could not resolve due time for task {task.title!r}: {e}")
            continue
        if item:
            items.append(item)
    return items


def _event_items(backend: TriliumClient) -> Optional[List[DueItem]]:
    events = backend.get_events()
    if events is None:
        return None
    # A bad startTime aborts the whole tick
    return [event_due_item(event) for event in events]


def fire_alerts(items: List[DueItem], chat: TelegramClient, now: datetime) -> int:
    """Send an alert for every item sitting on a threshold; returns the count."""
    sent = 0
    for item in items:
        if item.due <= now:
            continue
        minutes = minutes_remaining(item.due, now)
        if not should_fire(minutes, item.is_reminder):
            continue

        result, status_code = chat.send_message(format_alert(item, minutes))
        if status_code == 200:
            logger.info(f"✅ Sent {format_duration(minutes)} alert for {item.source.value} {item.title!r}")
            ALERTS_SENT.labels(source=item.source.value).inc()
            sent += 1
        else:
            logger.error(f"❌ Failed to send alert: {result}")
    return sent


def _check(source: DueSource, backend: TriliumClient, chat: TelegramClient, now: Optional[datetime], tz) -> int:
    now = now or local_now(tz)
    started = time.time()
    items = _task_items(backend) if source is DueSource.task else _event_items(backend)
    if items is None:
        POLL_FAILURES.labels(source=source.value).inc()
        logger.warning(f"Skipping {source.value} alerts this minute")
        return 0

    sent = fire_alerts(items, chat, now)
    POLL_LATENCY.labels(source=source.value).observe(time.time() - started)
    logger.debug(f"{source.value} check complete: {len(items)} due items, {sent} alerts")
    return sent


def check_tasks(backend: TriliumClient, chat: TelegramClient, now: Optional[datetime] = None, tz=None) -> int:
    """Job: alert on tasks and reminders."""
    return _check(DueSource.task, backend, chat, now, tz)


def check_events(backend: TriliumClient, chat: TelegramClient, now: Optional[datetime] = None, tz=None) -> int:
    """Job: alert on calendar events."""
    return _check(DueSource.event, backend, chat, now, tz)


def list_upcoming(
    backend: TriliumClient,
    now: Optional[datetime] = None,
    limit: int = UPCOMING_LIMIT,
    tz=None,
) -> List[DueItem]:
    """Future tasks and events, soonest first."""
    now = now or local_now(tz)
    items = (_task_items(backend) or []) + (_event_items(backend) or [])
    upcoming = sorted((item for item in items if item.due > now), key=lambda item: item.due)
    return upcoming[:limit]


def create_scheduler(config: RelayConfig, backend: TriliumClient, chat: TelegramClient) -> BackgroundScheduler:
    """Both alert jobs, each on its own minute-aligned cron trigger."""
    tz = local_timezone(config.TIMEZONE)
    scheduler = BackgroundScheduler(timezone=tz) if tz else BackgroundScheduler()
    grace = config.ALERT_GRACE_SECONDS

    for job_id, func in (("task_alerts_job", check_tasks), ("event_alerts_job", check_events)):
        scheduler.add_job(
            func,
            'cron',
            minute='*',
            second=grace,
            args=(backend, chat),
            kwargs={"tz": tz},
            id=job_id,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
            replace_existing=True
        )
    return scheduler


def start_scheduler(config: RelayConfig, backend: TriliumClient, chat: TelegramClient) -> BackgroundScheduler:
    scheduler = create_scheduler(config, backend, chat)
    scheduler.start()
    logger.info(f"🚀 Scheduler started: task and event alerts every minute at :{config.ALERT_GRACE_SECONDS:02d}")
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler):
    """Stop the scheduler gracefully."""
    scheduler.shutdown(wait=False)
    logger.info("🛑 Scheduler stopped")
