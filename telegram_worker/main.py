import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Mapping, Optional

from .config import RelayConfig
from .metrics import UPDATES_PROCESSED, start_metrics_server
from .models import DueItem
from .processors import calendar_import, notes, reminder
from .processors.apis import TriliumClient
from .processors.reminder import ReminderSession
from .scheduler import list_upcoming, start_scheduler
from .send import TelegramClient, escape_code, escape_markdown
from .timeutils import local_now, local_timezone

logger = logging.getLogger(__name__)

REMIND_COMMAND = "/remindme"
NEXT_COMMAND = "/next"


@dataclass
class WorkerContext:
    config: RelayConfig
    chat: TelegramClient
    backend: TriliumClient
    session: ReminderSession = field(default_factory=ReminderSession)
    tz: Optional[object] = None

    def now(self) -> datetime:
        return local_now(self.tz)


def format_upcoming(items: List[DueItem]) -> str:
    if not items:
        return "Nothing upcoming 🎉"
    lines = [
        f"{item.due.strftime('%a %Y-%m-%d %H:%M')} {item.title}"
        for item in items
    ]
    return "```\n" + escape_code("\n".join(lines)) + "\n```"


def _sender_id(update: Mapping) -> Optional[int]:
    source = update.get("callback_query") or update.get("message") or {}
    return source.get("from", {}).get("id")


def handle_update(update: Mapping, ctx: WorkerContext) -> str:
    """
    Route one Telegram update. Returns the kind of update handled, for
    logging and metrics.
    """
    if _sender_id(update) != ctx.config.TELEGRAM_USER_ID:
        logger.debug(f"Ignoring update {update.get('update_id')} from {_sender_id(update)}")
        return "ignored"

    # Handle button presses
    if update.get("callback_query"):
        reminder.handle_callback(ctx.session, ctx.chat, ctx.backend, update["callback_query"])
        return "callback"

    msg = update.get("message") or {}

    # Handle calendar attachments
    document = msg.get("document")
    if document:
        if calendar_import.is_calendar_document(document):
            calendar_import.import_calendar(document, ctx.chat, ctx.backend, ctx.tz)
            return "calendar"
        logger.info(f"Ignoring document with mime type {document.get('mime_type')}")
        return "ignored"

    text = msg.get("text")
    if not text:
        return "ignored"

    logger.info(f"Received: {text}")
    command = (text.split() or [""])[0].split("@")[0]

    if command == REMIND_COMMAND:
        reminder.start(ctx.session, ctx.chat, ctx.now())
        return "remindme"

    if command == NEXT_COMMAND:
        try:
            upcoming = list_upcoming(ctx.backend, ctx.now())
        except ValueError as e:
            logger.error(f"Could not list upcoming items: {e}")
            ctx.chat.send_message(f"❌ {escape_markdown(str(e))}")
            return "next"
        ctx.chat.send_message(format_upcoming(upcoming))
        return "next"

    if reminder.handle_text(ctx.session, ctx.chat, text):
        return "reminder"

    notes.save_note(text, ctx.chat, ctx.backend, ctx.now(), reply_to=msg.get("message_id"))
    return "note"


def start_worker(ctx: WorkerContext):
    """
    Infinite loop: long poll Telegram and hand every update to handle_update.
    Updates are processed strictly one after another.
    """
    logger.info("Worker started. Waiting for updates")
    offset = None

    while True:
        try:
            updates = ctx.chat.get_updates(offset, ctx.config.POLL_TIMEOUT)
        except ConnectionError as e:
            logger.error(f"Worker Loop Error: {e}")
            time.sleep(5) # Cooldown before retrying loop
            continue

        for update in updates:
            offset = update["update_id"] + 1
            try:
                kind = handle_update(update, ctx)
                UPDATES_PROCESSED.labels(kind=kind).inc()
            except Exception as e:
                logger.error(f"Update handling error: {e}", exc_info=True)
                UPDATES_PROCESSED.labels(kind="error").inc()


def main():
    logging.basicConfig(level=logging.INFO)

    config = RelayConfig()
    missing = config.missing()
    if missing:
        logger.error(f"CRITICAL CONFIG ERROR: Missing values for {', '.join(missing)}")
        sys.exit(1)

    backend = TriliumClient(config)
    if not backend.login():
        sys.exit(1)

    chat = TelegramClient(config)
    ctx = WorkerContext(config=config, chat=chat, backend=backend, tz=local_timezone(config.TIMEZONE))

    start_metrics_server(config.METRICS_PORT)
    start_scheduler(config, backend, chat)
    logger.info("Init done!")
    start_worker(ctx)


if __name__ == "__main__":
    main()
