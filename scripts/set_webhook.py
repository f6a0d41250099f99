"""Register the bot's webhook URL with Telegram.

Usage:
    python -m scripts.set_webhook --url https://bot.example.com
    python -m scripts.set_webhook --info
"""

import argparse
import asyncio
import json

from chatbridge.core.config import settings
from chatbridge.services.telegram_service import TelegramClient


def build_webhook_url(base_url: str, secret: str) -> str:
    """Full webhook URL including the secret path token."""
    return f"{base_url.rstrip('/')}/api/telegram/webhook/{secret}"


async def register(base_url: str, drop_pending_updates: bool) -> dict:
    """Point Telegram at this deployment's webhook endpoint."""
    if not settings.telegram.is_webhook_secret_configured:
        raise SystemExit("WEBHOOK_SECRET_TOKEN is not set")
    secret = settings.telegram.webhook_secret_token.get_secret_value()

    client = TelegramClient(settings.telegram)
    try:
        return await client.set_webhook(
            build_webhook_url(base_url, secret),
            drop_pending_updates=drop_pending_updates,
        )
    finally:
        await client.aclose()


async def show_info() -> dict:
    client = TelegramClient(settings.telegram)
    try:
        return await client.get_webhook_info()
    finally:
        await client.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage the Telegram webhook")
    parser.add_argument("--url", help="Public base URL (defaults to PUBLIC_URL)")
    parser.add_argument("--drop-pending", action="store_true", help="Discard queued updates")
    parser.add_argument("--info", action="store_true", help="Show current webhook info")
    args = parser.parse_args()

    if not settings.telegram.is_bot_token_configured:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set")

    if args.info:
        result = asyncio.run(show_info())
    else:
        base_url = args.url or settings.server.webhook_base_url
        if not base_url:
            raise SystemExit("Pass --url or set PUBLIC_URL")
        result = asyncio.run(register(base_url, args.drop_pending))

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
