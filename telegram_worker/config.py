import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv
from .scheduler_config import DEFAULT_GRACE_SECONDS

current_file_path = Path(__file__).resolve()
root_dir = current_file_path.parent.parent
env_path = root_dir / ".env.dev"

if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=True)
else:
    load_dotenv()


def _int_env(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class RelayConfig:
    def __init__(
        self,
        bot_token: Optional[str] = None,
        user_id: Optional[int] = None,
        trilium_host: Optional[str] = None,
        trilium_user: Optional[str] = None,
        trilium_password: Optional[str] = None,
        timezone: Optional[str] = None,
        alert_grace_seconds: Optional[int] = None,
        poll_timeout: Optional[int] = None,
        metrics_port: Optional[int] = None,
    ) -> None:
        self.TELEGRAM_BOT_TOKEN = bot_token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.TELEGRAM_USER_ID = user_id if user_id is not None else _int_env("TELEGRAM_USER_ID")
        self.TRILIUM_HOST = trilium_host or os.getenv("TRILIUM_HOST")
        self.TRILIUM_USER = trilium_user or os.getenv("TRILIUM_USER")
        self.TRILIUM_PASSWORD = trilium_password or os.getenv("TRILIUM_PASSWORD")
        self.TIMEZONE = timezone or os.getenv("TIMEZONE")
        self.ALERT_GRACE_SECONDS = (
            alert_grace_seconds if alert_grace_seconds is not None
            else _int_env("ALERT_GRACE_SECONDS", DEFAULT_GRACE_SECONDS)
        )
        self.POLL_TIMEOUT = poll_timeout if poll_timeout is not None else _int_env("POLL_TIMEOUT", 30)
        self.METRICS_PORT = metrics_port if metrics_port is not None else _int_env("METRICS_PORT")

    def missing(self) -> List[str]:
        """Names of required settings that are not set."""
        missing = []
        if not self.TELEGRAM_BOT_TOKEN: missing.append("TELEGRAM_BOT_TOKEN")
        if self.TELEGRAM_USER_ID is None: missing.append("TELEGRAM_USER_ID")
        if not self.TRILIUM_HOST: missing.append("TRILIUM_HOST")
        if not self.TRILIUM_USER: missing.append("TRILIUM_USER")
        if not self.TRILIUM_PASSWORD: missing.append("TRILIUM_PASSWORD")
        return missing
