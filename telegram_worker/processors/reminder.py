"""
Interactive reminder builder.

/remindme opens a session and posts a message with duration buttons. Button
presses add to the offset, plain text replaces the label, `time <spec>`
moves the anchor, and save stores `anchor + offset` in Trilium.

Only the update consumer touches the session, so it carries no lock.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping, Optional

from ..enums import CallbackAction
from ..send import TelegramClient, escape_markdown, inline_keyboard, sent_message_id
from ..timeutils import TimeSpecError, format_duration, parse_time
from .apis import TriliumClient

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "reminder"
TIME_PREFIX = "time "

INCREMENTS = {
    CallbackAction.add_10m: timedelta(minutes=10),
    CallbackAction.add_1h: timedelta(hours=1),
    CallbackAction.add_1d: timedelta(days=1),
    CallbackAction.add_1w: timedelta(weeks=1),
}

KEYBOARD = inline_keyboard([
    [
        ("+10m", CallbackAction.add_10m.value),
        ("+1h", CallbackAction.add_1h.value),
        ("+1d", CallbackAction.add_1d.value),
        ("+1w", CallbackAction.add_1w.value),
    ],
    [("save", CallbackAction.save.value)],
])


@dataclass
class ReminderSession:
    edited_message_id: Optional[int] = None
    label: str = ""
    anchor_time: datetime = field(default_factory=datetime.now)
    offset: timedelta = field(default_factory=timedelta)

    @property
    def active(self) -> bool:
        return bool(self.label)

    @property
    def fire_time(self) -> datetime:
        return self.anchor_time + self.offset

    def reset(self, now: datetime) -> None:
        self.edited_message_id = None
        self.label = DEFAULT_LABEL
        self.anchor_time = now
        self.offset = timedelta()

    def clear(self) -> None:
        self.edited_message_id = None
        self.label = ""
        self.offset = timedelta()


def render(session: ReminderSession) -> str:
    return (
        f"🔔 *{escape_markdown(session.label)}*\n"
        f"in {escape_markdown(format_duration(session.offset))} "
        f"\\({escape_markdown(session.fire_time.strftime('%Y-%m-%d %H:%M'))}\\)"
    )


def _refresh(session: ReminderSession, chat: TelegramClient) -> None:
    if session.edited_message_id is None:
        return
    result, status_code = chat.edit_message(session.edited_message_id, render(session), KEYBOARD)
    if status_code != 200:
        logger.error(f"Failed to update reminder message: {result}")


def start(session: ReminderSession, chat: TelegramClient, now: datetime) -> None:
    """/remindme: discard any unfinished session and open a new one."""
    if session.active:
        logger.info(f"Discarding unfinished reminder {session.label!r}")
    session.reset(now)

    result, status_code = chat.send_message(render(session), reply_markup=KEYBOARD)
    if status_code == 200:
        session.edited_message_id = sent_message_id(result)
    else:
        logger.error(f"Failed to send reminder builder: {result}")


def handle_text(session: ReminderSession, chat: TelegramClient, text: str) -> bool:
    """
    Feed a plain message to the session.

    Returns False when no session is active and the text should be handled
    elsewhere.
    """
    if not session.active:
        return False

    if text.startswith(TIME_PREFIX):
        try:
            session.anchor_time = parse_time(text[len(TIME_PREFIX):])
        except TimeSpecError as e:
            chat.send_message(f"❌ {escape_markdown(str(e))}")
            return True
        chat.send_message(f"✅ Time set to {escape_markdown(session.anchor_time.strftime('%Y-%m-%d %H:%M'))}")
        _refresh(session, chat)
        return True

    session.label = text
    _refresh(session, chat)
    return True


def handle_callback(
    session: ReminderSession,
    chat: TelegramClient,
    backend: TriliumClient,
    callback: Mapping,
) -> None:
    """Apply a button press and answer the callback query."""
    callback_id = callback.get("id")
    try:
        action = CallbackAction(callback.get("data"))
    except ValueError:
        logger.warning(f"Unknown callback data: {callback.get('data')!r}")
        chat.answer_callback(callback_id)
        return

    if not session.active:
        logger.info(f"Ignoring {action.value}: no reminder in progress")
        chat.answer_callback(callback_id, "No active reminder, send /remindme first")
        return

    if action is CallbackAction.save:
        _save(session, chat, backend)
        chat.answer_callback(callback_id)
        return

    session.offset += INCREMENTS[action]
    _refresh(session, chat)
    chat.answer_callback(callback_id)


def _save(session: ReminderSession, chat: TelegramClient, backend: TriliumClient) -> None:
    when = session.fire_time
    if not backend.create_reminder(when, session.label):
        chat.send_message("❌ Could not save the reminder, press save to retry")
        return

    logger.info(f"Saved reminder {session.label!r} for {when.isoformat()}")
    chat.send_message(
        f"✅ Reminder saved for {escape_markdown(when.strftime('%Y-%m-%d %H:%M'))}: "
        f"{escape_markdown(session.label)}"
    )
    session.clear()
