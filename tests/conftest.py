"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from chatbridge.core.config import Settings
from chatbridge.dependencies import get_message_router, get_session_store
from chatbridge.main import app
from chatbridge.repositories.session_store import SessionStore
from chatbridge.schemas.telegram_schema import TelegramMessage
from chatbridge.services.completion_service import CompletionService
from chatbridge.services.credential_service import CredentialValidator, looks_like_credential
from chatbridge.services.message_router import MessageRouter
from chatbridge.services.telegram_service import TelegramClient

VALID_KEY = "sk-validcredential1234567890123456789012"
BOT_TOKEN = "123456:test-bot-token"
WEBHOOK_SECRET = "webhook-secret"


# --- Clock ---


class FakeClock:
    """Manually advanced clock for deterministic expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(clock: FakeClock) -> SessionStore:
    """Create a store with a 30 minute window driven by the fake clock."""
    return SessionStore(ttl=timedelta(minutes=30), clock=clock)


# --- Settings ---


def make_settings(**overrides: object) -> Settings:
    """Build Settings isolated from the environment's .env file."""
    values: dict[str, object] = {
        "telegram_bot_token": BOT_TOKEN,
        "webhook_secret_token": WEBHOOK_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


# --- Collaborator mocks ---


@pytest.fixture
def mock_telegram() -> MagicMock:
    """Create a mock TelegramClient recording sent messages."""
    mock = MagicMock(spec=TelegramClient)
    mock.max_message_length = 4096
    mock.send_message = AsyncMock(return_value={"ok": True})
    return mock


@pytest.fixture
def mock_validator() -> MagicMock:
    """Create a CredentialValidator mock using the real format check."""
    mock = MagicMock(spec=CredentialValidator)
    mock.looks_like_credential.side_effect = lambda text: looks_like_credential(
        text, prefix="sk-", min_length=40
    )
    mock.validate = AsyncMock(return_value=True)
    mock.ensure_valid = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def mock_completion() -> MagicMock:
    """Create a CompletionService mock answering with a fixed text."""
    mock = MagicMock(spec=CompletionService)
    mock.complete = AsyncMock(return_value="Test response")
    return mock


@pytest.fixture
def message_router(
    session_store: SessionStore,
    mock_validator: MagicMock,
    mock_completion: MagicMock,
    mock_telegram: MagicMock,
) -> MessageRouter:
    return MessageRouter(
        store=session_store,
        validator=mock_validator,
        completion=mock_completion,
        telegram=mock_telegram,
    )


def sent_texts(mock_telegram: MagicMock) -> list[str]:
    """Texts passed to send_message, in call order."""
    return [c.args[1] for c in mock_telegram.send_message.call_args_list]


# --- Telegram payloads ---


def make_update(text: str, chat_id: int = 1001, update_id: int = 1) -> dict:
    """Raw webhook payload for a private text message."""
    return {
        "update_id": update_id,
        "message": {
            "message_id": 10,
            "date": 1767268800,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": 42, "is_bot": False, "first_name": "Alex", "username": "alex"},
            "text": text,
        },
    }


def make_message(text: str, chat_id: int = 1001) -> TelegramMessage:
    return TelegramMessage.model_validate(make_update(text, chat_id)["message"])


# --- App client ---


@pytest.fixture
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with a bot token and webhook secret, patched into the webhook router."""
    settings = make_settings()
    monkeypatch.setattr("chatbridge.api.telegram.webhook_router.settings", settings)
    return settings


@pytest.fixture
async def async_client(
    test_settings: Settings,
    message_router: MessageRouter,
    session_store: SessionStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client routing into the mocked collaborators."""
    app.dependency_overrides[get_message_router] = lambda: message_router
    app.dependency_overrides[get_session_store] = lambda: session_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
