"""Webhook access checks."""

import hmac
from typing import Protocol

from chatbridge.core.settings import TelegramConfig


def verify_webhook_token(token: str, config: TelegramConfig) -> bool:
    """Compare the webhook path token against the configured secret.

    An unset secret rejects every request.
    """
    expected = config.webhook_secret_token.get_secret_value()
    if not expected:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


class SourceGuard(Protocol):
    """Decides whether a request's client address may reach the webhook."""

    def is_trusted_source(self, ip: str | None) -> bool: ...


class AllowAllSourceGuard:
    """Default guard: permits every address.

    Forwarded-for headers are client-controlled, so the path token remains the
    actual access control. Swap in another ``SourceGuard`` to restrict callers.
    """

    def is_trusted_source(self, ip: str | None) -> bool:
        return True


def extract_client_ip(headers: dict[bytes, bytes], client: tuple[str, int] | None) -> str | None:
    """Client address from x-forwarded-for (first hop), x-real-ip, or the socket."""
    forwarded = headers.get(b"x-forwarded-for", b"").decode("latin-1").strip()
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    real_ip = headers.get(b"x-real-ip", b"").decode("latin-1").strip()
    if real_ip:
        return real_ip
    if client:
        return client[0]
    return None
