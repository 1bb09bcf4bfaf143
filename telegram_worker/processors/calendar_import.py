"""
Calendar attachment ingestion: .ics documents become Trilium events.
"""
import logging
from typing import Mapping

from ..send import TelegramClient, escape_markdown
from .apis import TriliumClient
from .ical import CalendarParseError, parse_calendar

logger = logging.getLogger(__name__)

CALENDAR_MIME = "text/calendar"


def is_calendar_document(document: Mapping) -> bool:
    return document.get("mime_type") == CALENDAR_MIME


def import_calendar(
    document: Mapping,
    chat: TelegramClient,
    backend: TriliumClient,
    tz=None,
) -> int:
    """
    Download, parse and store every event of a calendar attachment.

    Parse errors are reported to the chat and nothing is stored.
    Returns the number of events stored.
    """
    file_name = document.get("file_name") or "calendar.ics"
    data = chat.download_file(document["file_id"])
    if data is None:
        chat.send_message("❌ Could not download the calendar file")
        return 0

    try:
        # exports from Windows tools often start with a BOM
        text = data.decode("utf-8-sig")
        calendar = parse_calendar(text, tz)
    except (UnicodeDecodeError, CalendarParseError) as e:
        logger.warning(f"Rejected calendar {file_name!r}: {e}")
        chat.send_message(f"❌ Could not read {escape_markdown(file_name)}: {escape_markdown(str(e))}")
        return 0

    stored = 0
    for event in calendar.events:
        if backend.create_event(event, file_name, text):
            stored += 1
        else:
            logger.error(f"Failed to store event {event.uid!r} ({event.summary!r})")

    logger.info(f"Imported {stored}/{len(calendar.events)} event(s) from {file_name!r}")
    chat.send_message(f"📅 Saved {stored} of {len(calendar.events)} event\\(s\\)")
    return stored
