"""Global dependencies for the application."""

from functools import lru_cache, partial
from typing import Annotated

from fastapi import Depends

from chatbridge.core.config import settings
from chatbridge.core.security import AllowAllSourceGuard, SourceGuard
from chatbridge.repositories.session_store import SessionStore
from chatbridge.services.completion_service import CompletionService, build_chat_model
from chatbridge.services.credential_service import CredentialValidator
from chatbridge.services.message_router import MessageRouter
from chatbridge.services.telegram_service import TelegramClient

# --- Process-wide singletons ---


@lru_cache
def get_session_store() -> SessionStore:
    """Get the in-process session store. Sessions do not survive restarts."""
    return SessionStore(ttl=settings.session.ttl)


@lru_cache
def get_telegram_client() -> TelegramClient:
    """Get the Bot API client sharing one HTTP connection pool."""
    return TelegramClient(settings.telegram)


@lru_cache
def get_completion_service() -> CompletionService:
    """Get the completion service for the configured provider."""
    llm_config = settings.llm
    return CompletionService(
        model_factory=partial(build_chat_model, llm_config),
        system_prompt=llm_config.system_prompt,
        context_max_turns=llm_config.context_max_turns,
    )


@lru_cache
def get_credential_validator() -> CredentialValidator:
    return CredentialValidator(settings.llm)


@lru_cache
def get_source_guard() -> SourceGuard:
    """Get the webhook source guard (permits every address by default)."""
    return AllowAllSourceGuard()


# --- Request-scoped ---


def get_message_router(
    store: Annotated[SessionStore, Depends(get_session_store)],
    validator: Annotated[CredentialValidator, Depends(get_credential_validator)],
    completion: Annotated[CompletionService, Depends(get_completion_service)],
    telegram: Annotated[TelegramClient, Depends(get_telegram_client)],
) -> MessageRouter:
    """Get a MessageRouter wired to the shared collaborators."""
    return MessageRouter(
        store=store,
        validator=validator,
        completion=completion,
        telegram=telegram,
        provider=settings.llm.provider,
        credential_prefix=settings.llm.credential_prefix,
    )
