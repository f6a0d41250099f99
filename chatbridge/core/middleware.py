"""ASGI middleware guarding the webhook endpoints."""

import json

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from chatbridge.core.exceptions import UntrustedSourceError
from chatbridge.core.security import SourceGuard, extract_client_ip
from chatbridge.dependencies import get_source_guard

logger = structlog.get_logger()

GUARDED_PATH_PREFIX = "/api/telegram/webhook"


class TrustedSourceMiddleware:
    """Pure ASGI middleware rejecting webhook calls from untrusted addresses."""

    def __init__(self, app: ASGIApp, guard: SourceGuard | None = None) -> None:
        self.app = app
        self._guard = guard

    def _get_guard(self) -> SourceGuard:
        if self._guard is not None:
            return self._guard
        return get_source_guard()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(GUARDED_PATH_PREFIX):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        client_ip = extract_client_ip(headers, scope.get("client"))

        if not self._get_guard().is_trusted_source(client_ip):
            logger.warning("Request from untrusted source", client_ip=client_ip)
            error = UntrustedSourceError()
            await self._send_error(send, error.status_code, error.code, error.message)
            return

        await self.app(scope, receive, send)

    @staticmethod
    async def _send_error(send: Send, status: int, code: str, message: str) -> None:
        """Send a JSON error response directly."""
        body = json.dumps({"status": status, "message": message, "code": code}).encode()

        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
