"""Domain-specific configuration models."""

from chatbridge.core.settings.app_config import AppConfig
from chatbridge.core.settings.llm_config import LLMConfig
from chatbridge.core.settings.server_config import ServerConfig
from chatbridge.core.settings.session_config import SessionConfig
from chatbridge.core.settings.telegram_config import TelegramConfig

__all__ = [
    "AppConfig",
    "LLMConfig",
    "ServerConfig",
    "SessionConfig",
    "TelegramConfig",
]
