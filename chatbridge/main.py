"""FastAPI application entry point."""

import asyncio
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from chatbridge.api.telegram.webhook_router import router as webhook_router
from chatbridge.core.config import settings
from chatbridge.core.exceptions import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
)
from chatbridge.core.logging import configure_logging
from chatbridge.core.middleware import TrustedSourceMiddleware
from chatbridge.dependencies import get_session_store, get_telegram_client
from chatbridge.schemas.response_schema import ApiResponse, success_response
from chatbridge.services.session_sweeper import start_session_sweeper, stop_session_sweeper

configure_logging(settings.app)
logger = structlog.get_logger()


def _is_sweeper_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.session.sweep_enabled


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
        llm_provider=settings.llm.provider,
        llm_model=settings.llm.model_name,
        bot_token_configured=settings.telegram.is_bot_token_configured,
        webhook_secret_configured=settings.telegram.is_webhook_secret_configured,
    )
    sweeper: asyncio.Task[None] | None = None
    if _is_sweeper_enabled():
        sweeper = start_session_sweeper(
            get_session_store(), settings.session.sweep_interval_seconds
        )
    yield
    await stop_session_sweeper(sweeper)
    if get_telegram_client.cache_info().currsize:
        await get_telegram_client().aclose()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app.name,
    description="Telegram webhook bridging chats to an AI chat model",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.app.debug,
)

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

app.add_middleware(TrustedSourceMiddleware)


@app.get("/health", response_model=ApiResponse[dict])
async def health_check() -> dict:
    """Health check endpoint."""
    return success_response({"status": "healthy"})


@app.get("/", response_model=ApiResponse[dict])
async def root() -> dict:
    """Root endpoint."""
    return success_response(
        {
            "app": settings.app.name,
            "version": "0.1.0",
            "docs": "/docs",
        }
    )


app.include_router(webhook_router)


if __name__ == "__main__":
    uvicorn.run(
        "chatbridge.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )
