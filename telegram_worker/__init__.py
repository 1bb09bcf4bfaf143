from .config import RelayConfig
from .send import TelegramClient
from .processors.apis import TriliumClient
from .main import handle_update, WorkerContext
