"""API key format check and remote validation."""

import re

import anthropic
import openai
import structlog

from chatbridge.core.exceptions import CredentialRejectedError
from chatbridge.core.settings import LLMConfig

logger = structlog.get_logger()

VALIDATION_TIMEOUT_SECONDS = 10.0


def looks_like_credential(text: str, prefix: str, min_length: int) -> bool:
    """Cheap syntactic check: known prefix, no whitespace, minimum length."""
    candidate = text.strip()
    if len(candidate) < min_length:
        return False
    return re.fullmatch(rf"{re.escape(prefix)}\S+", candidate) is not None


class CredentialValidator:
    """Checks whether a user-supplied API key is accepted by the provider.

    Validation lists the provider's models with the key, which is free and
    fails with an authentication error for revoked or unknown keys.
    """

    def __init__(self, llm_config: LLMConfig) -> None:
        self._llm_config = llm_config

    def looks_like_credential(self, text: str) -> bool:
        return looks_like_credential(
            text,
            prefix=self._llm_config.credential_prefix,
            min_length=self._llm_config.credential_min_length,
        )

    async def _list_models(self, credential: str) -> None:
        if self._llm_config.provider == "anthropic":
            async with anthropic.AsyncAnthropic(
                api_key=credential,
                timeout=VALIDATION_TIMEOUT_SECONDS,
                max_retries=0,
            ) as client:
                await client.models.list(limit=1)
            return

        async with openai.AsyncOpenAI(
            api_key=credential,
            timeout=VALIDATION_TIMEOUT_SECONDS,
            max_retries=0,
        ) as client:
            await client.models.list()

    async def validate(self, credential: str) -> bool:
        """Return True if the provider accepts the key.

        Transient failures (timeouts, 5xx, connection errors) also yield False;
        they are logged separately since a retry could succeed.
        """
        try:
            await self._list_models(credential.strip())
        except (openai.AuthenticationError, anthropic.AuthenticationError):
            logger.info("Credential rejected by provider", provider=self._llm_config.provider)
            return False
        except (openai.APIError, anthropic.APIError) as exc:
            logger.warning(
                "Credential validation failed, retry candidate",
                provider=self._llm_config.provider,
                error_type=type(exc).__name__,
            )
            return False
        return True

    async def ensure_valid(self, credential: str) -> None:
        """Raise CredentialRejectedError unless the provider accepts the key."""
        if not await self.validate(credential):
            raise CredentialRejectedError()
