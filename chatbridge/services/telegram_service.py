"""Telegram Bot API client."""

from typing import Any

import httpx
import structlog

from chatbridge.core.settings import TelegramConfig
from chatbridge.models.chat_session import ChatId

logger = structlog.get_logger()

TELEGRAM_MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, limit: int = TELEGRAM_MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into consecutive chunks of at most ``limit`` characters.

    Each chunk is stripped of surrounding whitespace and empty chunks are
    dropped, so joining the result reproduces the input minus that trimming.
    """
    if limit < 1:
        raise ValueError("limit must be positive")
    chunks = (text[i : i + limit].strip() for i in range(0, len(text), limit))
    return [chunk for chunk in chunks if chunk]


class TelegramClient:
    """Thin async wrapper over the Bot API methods the bridge needs.

    Sending is fire-and-forget: transport failures are logged and reported in
    the returned payload, never raised.
    """

    def __init__(
        self,
        config: TelegramConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(
            timeout=config.request_timeout_seconds
        )

    @property
    def max_message_length(self) -> int:
        return self._config.max_message_length

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a Bot API method. The URL embeds the token and is never logged."""
        url = f"{self._config.bot_api_url}/{method}"
        try:
            response = await self._http.post(url, json=payload)
            data: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Telegram API request failed", method=method, error=type(e).__name__)
            return {"ok": False, "description": str(e)}

        if not data.get("ok"):
            logger.warning(
                "Telegram API returned an error",
                method=method,
                status_code=response.status_code,
                description=data.get("description"),
            )
        return data

    async def send_message(self, chat_id: ChatId, text: str) -> dict[str, Any]:
        """Send one plain-text message. Callers pre-chunk to the size limit."""
        return await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def set_webhook(
        self,
        url: str,
        drop_pending_updates: bool = False,
    ) -> dict[str, Any]:
        """Register the webhook URL with Telegram."""
        return await self._call(
            "setWebhook",
            {
                "url": url,
                "allowed_updates": ["message"],
                "drop_pending_updates": drop_pending_updates,
            },
        )

    async def get_webhook_info(self) -> dict[str, Any]:
        return await self._call("getWebhookInfo", {})

    async def aclose(self) -> None:
        await self._http.aclose()
