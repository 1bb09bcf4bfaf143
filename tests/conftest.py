import pytest
from telegram_worker.config import RelayConfig

OWNER_ID = 4242

class FakeChat:
    """Records outgoing Telegram calls instead of sending them."""

    def __init__(self, fail=False):
        self.sent = []
        self.edits = []
        self.answers = []
        self.files = {}
        self.fail = fail
        self._next_id = 100

    def send_message(self, text, reply_markup=None, reply_to=None):
        if self.fail:
            return {"status": "error"}, 500
        self._next_id += 1
        self.sent.append({"text": text, "reply_markup": reply_markup, "reply_to": reply_to})
        return {"ok": True, "result": {"message_id": self._next_id}}, 200

    def edit_message(self, message_id, text, reply_markup=None):
        self.edits.append({"message_id": message_id, "text": text})
        return {"ok": True}, 200

    def answer_callback(self, callback_id, text=None):
        self.answers.append((callback_id, text))
        return {"ok": True}, 200

    def download_file(self, file_id):
        return self.files.get(file_id)

class FakeBackend:
    """In-memory stand-in for TriliumClient."""

    def __init__(self, tasks=None, events=None):
        self.tasks = tasks if tasks is not None else []
        self.events = events if events is not None else []
        self.notes = []
        self.created_events = []
        self.reminders = []
        self.accept = True

    def get_tasks(self):
        return self.tasks

    def get_events(self):
        return self.events

    def create_text_note(self, title, content):
        self.notes.append((title, content))
        return self.accept

    def create_event(self, event, file_name, file_data):
        self.created_events.append((event, file_name, file_data))
        return self.accept

    def create_reminder(self, when, task):
        self.reminders.append((when, task))
        return self.accept

@pytest.fixture
def config():
    return RelayConfig(
        bot_token="123:abc",
        user_id=OWNER_ID,
        trilium_host="trilium.local:8080",
        trilium_user="me",
        trilium_password="secret",
        timezone="UTC",
    )

@pytest.fixture
def chat():
    return FakeChat()

@pytest.fixture
def backend():
    return FakeBackend()
