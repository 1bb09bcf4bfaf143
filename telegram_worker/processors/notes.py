import html
import logging
from datetime import datetime
from urllib.parse import urlparse

from ..send import TelegramClient
from .apis import TriliumClient

logger = logging.getLogger(__name__)

def is_url(text: str) -> bool:
    parsed = urlparse(text.strip())
    return bool(parsed.scheme and parsed.netloc) and " " not in text.strip()

def note_for(text: str, now: datetime):
    """Title and HTML content of the note saved for a chat message."""
    escaped = html.escape(text.strip())
    if is_url(text):
        content = f"<ul><li><a href=\"{escaped}\">{escaped}</a></li></ul>"
        kind = "URL"
    else:
        content = f"<ul><li>{escaped}</li></ul>"
        kind = "content"
    return f"{kind} found at {now.hour}:{now.minute:02}", content

def save_note(text: str, chat: TelegramClient, backend: TriliumClient, now: datetime, reply_to=None) -> bool:
    title, content = note_for(text, now)
    if not backend.create_text_note(title, content):
        chat.send_message("❌ Could not save that", reply_to=reply_to)
        return False

    logger.info(f"Saved note {title!r}")
    chat.send_message("URL saved :\\-\\)" if is_url(text) else "Text saved :\\-\\)", reply_to=reply_to)
    return True
