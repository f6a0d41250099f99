"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatbridge.core.settings import (
    AppConfig,
    LLMConfig,
    ServerConfig,
    SessionConfig,
    TelegramConfig,
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant chatting with a user through Telegram. "
    "Keep answers concise and use plain text, since the chat client does not "
    "render Markdown reliably."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.telegram.bot_token).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram
    telegram_bot_token: SecretStr = Field(
        default=SecretStr(""),
        description="Telegram Bot API token",
    )
    webhook_secret_token: SecretStr = Field(
        default=SecretStr(""),
        description="Secret path segment of the webhook URL",
    )
    telegram_api_base_url: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )
    telegram_max_message_length: int = Field(
        default=4096,
        ge=1,
        le=4096,
        description="Maximum characters per outbound message",
    )
    telegram_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for Bot API requests",
    )

    # LLM Provider
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="LLM provider the chat users hold keys for",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )
    llm_system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="System instruction prepended to every completion request",
    )
    llm_context_max_turns: int = Field(
        default=0,
        ge=0,
        description="Most recent turns sent to the model (0 = whole history)",
    )
    credential_min_length: int = Field(
        default=40,
        ge=8,
        description="Minimum length of a plausible API key",
    )

    # Session
    session_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Inactivity window after which a session expires",
    )
    session_sweep_interval_seconds: int = Field(
        default=300,
        ge=0,
        description="Interval of the expired-session sweep (0 disables it)",
    )

    # App
    app_name: str = Field(
        default="chatbridge",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8004,
        ge=1,
        le=65535,
        description="Server port",
    )
    public_url: str | None = Field(
        default=None,
        description="Public HTTPS base URL Telegram delivers updates to",
    )

    # --- Domain properties ---

    @cached_property
    def telegram(self) -> TelegramConfig:
        """Telegram Bot API configuration."""
        return TelegramConfig(
            bot_token=self.telegram_bot_token,
            webhook_secret_token=self.webhook_secret_token,
            api_base_url=self.telegram_api_base_url,
            max_message_length=self.telegram_max_message_length,
            request_timeout_seconds=self.telegram_request_timeout_seconds,
        )

    @cached_property
    def llm(self) -> LLMConfig:
        """LLM provider configuration."""
        return LLMConfig(
            provider=self.llm_provider,
            openai_model=self.openai_model,
            anthropic_model=self.anthropic_model,
            system_prompt=self.llm_system_prompt,
            context_max_turns=self.llm_context_max_turns,
            credential_min_length=self.credential_min_length,
        )

    @cached_property
    def session(self) -> SessionConfig:
        """Conversation session configuration."""
        return SessionConfig(
            ttl_minutes=self.session_ttl_minutes,
            sweep_interval_seconds=self.session_sweep_interval_seconds,
        )

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
            log_level=self.log_level,
        )

    @cached_property
    def server(self) -> ServerConfig:
        """Server configuration."""
        return ServerConfig(
            host=self.host,
            port=self.port,
            public_url=self.public_url,
        )

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
