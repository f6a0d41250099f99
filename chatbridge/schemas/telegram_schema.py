"""Telegram update schemas (the subset the bridge consumes)."""

from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    """Sender of a message."""

    id: int
    is_bot: bool = False
    first_name: str
    last_name: str | None = None
    username: str | None = None


class TelegramChat(BaseModel):
    """Chat a message belongs to."""

    id: int
    type: str  # private, group, supergroup, channel
    title: str | None = None
    username: str | None = None


class TelegramMessage(BaseModel):
    """Inbound message. ``from`` is a Python keyword, hence the alias."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    date: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None

    @property
    def is_command(self) -> bool:
        return bool(self.text) and self.text.startswith("/")


class TelegramUpdate(BaseModel):
    """Webhook payload. Update kinds the bridge ignores are dropped."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: TelegramMessage | None = None


class WebhookStatus(BaseModel):
    """Body of the webhook status endpoint."""

    status: str
    endpoint: str
    token_configured: bool
    active_sessions: int
    note: str
