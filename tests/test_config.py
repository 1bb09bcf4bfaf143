from telegram_worker.config import RelayConfig

def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "env-token")
    monkeypatch.setenv("TELEGRAM_USER_ID", "1")
    cfg = RelayConfig(bot_token="arg-token", user_id=2)
    assert cfg.TELEGRAM_BOT_TOKEN == "arg-token"
    assert cfg.TELEGRAM_USER_ID == 2

def test_environment_values(monkeypatch):
    monkeypatch.setenv("TELEGRAM_USER_ID", "31337")
    monkeypatch.setenv("ALERT_GRACE_SECONDS", "12")
    monkeypatch.setenv("METRICS_PORT", "")
    cfg = RelayConfig()
    assert cfg.TELEGRAM_USER_ID == 31337
    assert cfg.ALERT_GRACE_SECONDS == 12
    assert cfg.METRICS_PORT is None

def test_missing_lists_required_settings(monkeypatch):
    for name in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_USER_ID", "TRILIUM_HOST", "TRILIUM_USER", "TRILIUM_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    cfg = RelayConfig(trilium_host="localhost:9001")
    assert cfg.missing() == ["TELEGRAM_BOT_TOKEN", "TELEGRAM_USER_ID", "TRILIUM_USER", "TRILIUM_PASSWORD"]
