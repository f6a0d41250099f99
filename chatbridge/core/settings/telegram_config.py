"""Telegram Bot API configuration."""

from pydantic import BaseModel, SecretStr

PLACEHOLDER_BOT_TOKEN = "dummy-token-for-build"


class TelegramConfig(BaseModel, frozen=True):
    """Telegram bot and webhook settings."""

    bot_token: SecretStr
    webhook_secret_token: SecretStr
    api_base_url: str
    max_message_length: int
    request_timeout_seconds: float

    @property
    def is_bot_token_configured(self) -> bool:
        """Whether a real bot token (not the build placeholder) is set."""
        token = self.bot_token.get_secret_value()
        return bool(token) and token != PLACEHOLDER_BOT_TOKEN

    @property
    def is_webhook_secret_configured(self) -> bool:
        return bool(self.webhook_secret_token.get_secret_value())

    @property
    def bot_api_url(self) -> str:
        """Base URL for bot methods, e.g. ``<base>/bot<token>``."""
        base = self.api_base_url.rstrip("/")
        return f"{base}/bot{self.bot_token.get_secret_value()}"
