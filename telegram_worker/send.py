import logging
import re
from typing import List, Mapping, Optional, Sequence, Tuple
import requests
from .config import RelayConfig
# Setup logger
logger = logging.getLogger(__name__)

MARKDOWN_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")
CODE_SPECIAL = re.compile(r"([`\\])")

def escape_markdown(text: str) -> str:
    """Escape text for Telegram's MarkdownV2 parse mode."""
    return MARKDOWN_SPECIAL.sub(r"\\\1", text)

def escape_code(text: str) -> str:
    """Escape text placed inside a ``` pre block."""
    return CODE_SPECIAL.sub(r"\\\1", text)

def inline_keyboard(rows: Sequence[Sequence[Tuple[str, str]]]) -> Mapping:
    """Build reply_markup from rows of (button text, callback data)."""
    return {
        "inline_keyboard": [
            [{"text": text, "callback_data": data} for text, data in row]
            for row in rows
        ]
    }

class TelegramClient:
    """
    Thin wrapper over the Telegram Bot HTTP API.

    Every call returns (response json, status code) and never raises for
    transport errors, mirroring how failures are reported elsewhere.
    """

    def __init__(self, config: RelayConfig) -> None:
        self.config = config
        self.chat_id = config.TELEGRAM_USER_ID

    def _api_url(self, method: str) -> str:
        return f"https://api.telegram.org/bot{self.config.TELEGRAM_BOT_TOKEN}/{method}"

    def _file_url(self, file_path: str) -> str:
        return f"https://api.telegram.org/file/bot{self.config.TELEGRAM_BOT_TOKEN}/{file_path}"

    def _call(self, method: str, payload: Mapping, timeout: float = 15) -> Tuple[Mapping, int]:
        # Validation
        if not (self.config.TELEGRAM_BOT_TOKEN and self.chat_id):
            logger.error("Missing Telegram configuration or recipient")
            return {"status": "error", "message": "Missing configuration"}, 500

        resp = None
        try:
            resp = requests.post(self._api_url(method), json=payload, timeout=timeout)
            resp.raise_for_status()
            return resp.json(), resp.status_code

        except requests.Timeout:
            logger.error(f"Telegram {method} timed out")
            return {"status": "error", "message": "Request timed out"}, 408

        except requests.RequestException as e:
            logger.error(f"Telegram {method} error: {e}")
            if resp is not None:
                try:
                    return resp.json(), resp.status_code
                except ValueError:
                    pass # Fall through to generic error
            return {"status": "error", "message": f"Failed to call {method}"}, 500

    def send_message(
        self,
        text: str,
        reply_markup: Optional[Mapping] = None,
        reply_to: Optional[int] = None,
    ) -> Tuple[Mapping, int]:
        """
        Sends a MarkdownV2 message to the owner.

        Arguments:
            text (str): Already escaped message body.
            reply_markup (Mapping, optional): Inline keyboard.
            reply_to (int, optional): Message id to reply to.
        """
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "MarkdownV2"}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        if reply_to:
            payload["reply_to_message_id"] = reply_to
        return self._call("sendMessage", payload)

    def edit_message(
        self,
        message_id: int,
        text: str,
        reply_markup: Optional[Mapping] = None,
    ) -> Tuple[Mapping, int]:
        payload = {
            "chat_id": self.chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": "MarkdownV2",
        }
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return self._call("editMessageText", payload)

    def answer_callback(self, callback_id: str, text: Optional[str] = None) -> Tuple[Mapping, int]:
        payload = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        return self._call("answerCallbackQuery", payload)

    def get_updates(self, offset: Optional[int], timeout: int) -> List[Mapping]:
        """Long poll for new updates. Raises ConnectionError so the caller can back off."""
        payload = {"timeout": timeout, "allowed_updates": ["message", "callback_query"]}
        if offset is not None:
            payload["offset"] = offset
        result, status_code = self._call("getUpdates", payload, timeout=timeout + 10)
        if status_code != 200 or not result.get("ok"):
            raise ConnectionError(f"getUpdates failed ({status_code}): {result}")
        return result.get("result", [])

    def download_file(self, file_id: str) -> Optional[bytes]:
        """
        Download an attachment sent to the bot.

        Returns:
            Binary content of the file or None on failure
        """
        result, status_code = self._call("getFile", {"file_id": file_id})
        file_path = result.get("result", {}).get("file_path") if status_code == 200 else None
        if not file_path:
            logger.error(f"No file path for file {file_id}: {result}")
            return None

        try:
            resp = requests.get(self._file_url(file_path), timeout=30)
            resp.raise_for_status()
            return resp.content
        except requests.RequestException as e:
            logger.error(f"Failed to download file {file_id}: {e}")
            return None

def sent_message_id(result: Mapping) -> Optional[int]:
    return result.get("result", {}).get("message_id") if result.get("ok") else None
