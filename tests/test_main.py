from datetime import datetime, timedelta
import pytest
from telegram_worker.main import WorkerContext, format_upcoming, handle_update
from telegram_worker.enums import DueSource
from telegram_worker.models import BackendEvent, DueItem
from conftest import OWNER_ID

ICS = (
    "BEGIN:VCALENDAR\r\n"
    "NAME:Work\r\n"
    "BEGIN:VEVENT\r\n"
    "UID:standup-1\r\n"
    "SUMMARY:Standup\r\n"
    "DTSTART:20240101T090000Z\r\n"
    "DURATION:PT0H30M\r\n"
    "END:VEVENT\r\n"
    "BEGIN:VEVENT\r\n"
    "UID:retro-1\r\n"
    "SUMMARY:Retro\r\n"
    "X-ALT-DESC;FMTTYPE=text/html:<p>bring notes</p>\r\n"
    "DTSTART:20240101T150000\r\n"
    "DTEND:20240101T160000\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)

@pytest.fixture
def ctx(config, chat, backend):
    return WorkerContext(config=config, chat=chat, backend=backend)

def message(text=None, sender=OWNER_ID, **extra):
    msg = {"message_id": 7, "from": {"id": sender}, "chat": {"id": sender}}
    if text is not None:
        msg["text"] = text
    msg.update(extra)
    return {"update_id": 1, "message": msg}

def callback(data, sender=OWNER_ID):
    return {"update_id": 2, "callback_query": {"id": "q1", "from": {"id": sender}, "data": data}}

def test_strangers_are_ignored(ctx, chat, backend):
    assert handle_update(message("hello", sender=999), ctx) == "ignored"
    assert handle_update(callback("save_cb", sender=999), ctx) == "ignored"
    assert chat.sent == [] and chat.answers == []
    assert backend.notes == []

def test_text_is_saved_as_note(ctx, chat, backend):
    assert handle_update(message("remember the milk"), ctx) == "note"
    title, content = backend.notes[0]
    assert title.startswith("content found at ")
    assert content == "<ul><li>remember the milk</li></ul>"
    assert chat.sent[0]["text"] == "Text saved :\\-\\)"
    assert chat.sent[0]["reply_to"] == 7

def test_url_is_saved_as_link(ctx, chat, backend):
    handle_update(message("https://example.com/a?b=1&c=2"), ctx)
    title, content = backend.notes[0]
    assert title.startswith("URL found at ")
    assert content == '<ul><li><a href="https://example.com/a?b=1&amp;c=2">https://example.com/a?b=1&amp;c=2</a></li></ul>'
    assert chat.sent[0]["text"] == "URL saved :\\-\\)"

def test_reminder_flow_through_updates(ctx, chat, backend):
    assert handle_update(message("/remindme"), ctx) == "remindme"
    assert handle_update(message("water the plants"), ctx) == "reminder"
    assert handle_update(callback("10m_cb"), ctx) == "callback"
    handle_update(callback("save_cb"), ctx)

    when, label = backend.reminders[0]
    assert label == "water the plants"
    assert when == ctx.session.anchor_time + timedelta(minutes=10)
    assert backend.notes == []
    assert not ctx.session.active

def test_text_after_save_is_a_note_again(ctx, backend):
    handle_update(message("/remindme"), ctx)
    handle_update(callback("save_cb"), ctx)
    handle_update(message("loose thought"), ctx)
    assert len(backend.notes) == 1

def test_calendar_document_is_imported(ctx, chat, backend):
    chat.files["f1"] = ICS.encode("utf-8")
    update = message(document={"file_id": "f1", "file_name": "work.ics", "mime_type": "text/calendar"})
    assert handle_update(update, ctx) == "calendar"

    assert [e.uid for e, _, _ in backend.created_events] == ["standup-1", "retro-1"]
    standup, file_name, file_data = backend.created_events[0]
    assert (standup.end - standup.start).total_seconds() == 30 * 60
    assert file_name == "work.ics"
    assert file_data == ICS
    assert backend.created_events[1][0].description_html == "<p>bring notes</p>"
    assert "Saved 2 of 2" in chat.sent[-1]["text"]

def test_broken_calendar_is_reported(ctx, chat, backend):
    chat.files["f2"] = b"BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\nSUMMARY:x\r\nEND:VEVENT\r\nEND:VCALENDAR\r\n"
    update = message(document={"file_id": "f2", "file_name": "x.ics", "mime_type": "text/calendar"})
    handle_update(update, ctx)
    assert backend.created_events == []
    assert "no dtstart" in chat.sent[-1]["text"]

def test_calendar_with_byte_order_mark_is_imported(ctx, chat, backend):
    chat.files["f4"] = b"\xef\xbb\xbf" + ICS.encode("utf-8")
    update = message(document={"file_id": "f4", "file_name": "outlook.ics", "mime_type": "text/calendar"})
    handle_update(update, ctx)
    assert len(backend.created_events) == 2
    assert backend.created_events[0][2] == ICS
    assert "Saved 2 of 2" in chat.sent[-1]["text"]

@pytest.mark.parametrize("event_lines", [
    "DTSTART:99991231T235959\r\nDURATION:PT1H0M\r\n",
    "DTSTART:20240101T090000\r\nDURATION:PT99999999999H0M\r\n",
])
def test_out_of_range_calendar_is_reported(ctx, chat, backend, event_lines):
    ics = "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\n" + event_lines + "END:VEVENT\r\nEND:VCALENDAR\r\n"
    chat.files["f5"] = ics.encode("utf-8")
    update = message(document={"file_id": "f5", "file_name": "far.ics", "mime_type": "text/calendar"})
    assert handle_update(update, ctx) == "calendar"
    assert backend.created_events == []
    assert chat.sent[-1]["text"].startswith("❌")

def test_other_documents_are_ignored(ctx, chat):
    update = message(document={"file_id": "f3", "file_name": "a.pdf", "mime_type": "application/pdf"})
    assert handle_update(update, ctx) == "ignored"
    assert chat.sent == []

def test_next_lists_upcoming(ctx, chat, backend):
    backend.events = [BackendEvent(name="Dentist", startTime="2999-01-01T09:30:00")]
    assert handle_update(message("/next"), ctx) == "next"
    assert "Dentist" in chat.sent[0]["text"]
    assert chat.sent[0]["text"].startswith("```")

def test_next_with_broken_event_reports(ctx, chat, backend):
    backend.events = [BackendEvent(name="Dentist", startTime="soon")]
    handle_update(message("/next"), ctx)
    assert chat.sent[0]["text"].startswith("❌")

def test_format_upcoming():
    items = [
        DueItem(title="Dentist", due=datetime(2024, 1, 1, 9, 30), is_reminder=False, source=DueSource.event),
        DueItem(title="Pay `rent`", due=datetime(2024, 1, 2, 0, 0), is_reminder=False, source=DueSource.task),
    ]
    assert format_upcoming(items) == (
        "```\n"
        "Mon 2024-01-01 09:30 Dentist\n"
        "Tue 2024-01-02 00:00 Pay \\`rent\\`\n"
        "```"
    )
    assert format_upcoming([]) == "Nothing upcoming 🎉"
