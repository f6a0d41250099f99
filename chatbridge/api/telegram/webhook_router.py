"""Telegram webhook endpoints."""

import json
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from chatbridge.core.config import settings
from chatbridge.core.exceptions import AppException, WebhookAuthError
from chatbridge.core.security import verify_webhook_token
from chatbridge.dependencies import get_message_router, get_session_store
from chatbridge.repositories.session_store import SessionStore
from chatbridge.schemas.response_schema import ErrorResponse, WebhookAck, error_response
from chatbridge.schemas.telegram_schema import TelegramUpdate, WebhookStatus
from chatbridge.services.message_router import MessageRouter

logger = structlog.get_logger()

router = APIRouter(prefix="/api/telegram", tags=["telegram"])

MessageRouterDep = Annotated[MessageRouter, Depends(get_message_router)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]


def _require_bot_token() -> None:
    if not settings.telegram.is_bot_token_configured:
        logger.error("TELEGRAM_BOT_TOKEN not configured")
        raise AppException(
            message="Bot token not configured",
            code="BOT_TOKEN_NOT_CONFIGURED",
            status_code=500,
        )


async def _parse_update(request: Request) -> TelegramUpdate:
    """Decode the request body into a TelegramUpdate."""
    try:
        body = await request.json()
        update = TelegramUpdate.model_validate(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        logger.warning("Invalid webhook payload", error_type=type(exc).__name__)
        raise AppException(
            message="Invalid update payload",
            code="INVALID_PAYLOAD",
            status_code=400,
        ) from exc

    if settings.is_development and update.message is not None:
        logger.debug(
            "Received webhook update",
            update_id=update.update_id,
            chat_id=update.message.chat.id,
            text_length=len(update.message.text or ""),
        )
    return update


@router.post(
    "/webhook/{token}",
    response_model=WebhookAck,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def telegram_webhook(
    token: str,
    request: Request,
    message_router: MessageRouterDep,
) -> WebhookAck | JSONResponse:
    """Receive a Telegram update and route its message."""
    if not verify_webhook_token(token, settings.telegram):
        logger.warning("Invalid webhook token")
        raise WebhookAuthError()
    _require_bot_token()

    update = await _parse_update(request)
    if update.message is None:
        return WebhookAck()

    try:
        outcome = await message_router.handle_message(update.message)
    except Exception:
        logger.exception("Webhook handling failed", update_id=update.update_id)
        return JSONResponse(
            status_code=500,
            content=error_response(500, "Internal server error", "INTERNAL_ERROR"),
        )

    logger.info(
        "Update handled",
        update_id=update.update_id,
        chat_id=update.message.chat.id,
        outcome=outcome.value,
    )
    return WebhookAck()


@router.get(
    "/webhook/{token}",
    response_model=WebhookStatus,
    responses={404: {"model": ErrorResponse}},
)
async def webhook_status(token: str, store: SessionStoreDep) -> WebhookStatus:
    """Report webhook health. Hidden behind the same path token."""
    if not verify_webhook_token(token, settings.telegram):
        raise AppException(message="Not found", code="NOT_FOUND", status_code=404)

    return WebhookStatus(
        status="Telegram Bot Webhook is running",
        endpoint="/api/telegram/webhook/{token}",
        token_configured=settings.telegram.is_bot_token_configured,
        active_sessions=await store.count(),
        note="Webhook is secured with token validation",
    )
