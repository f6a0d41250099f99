"""Chat completion through LangChain chat models."""

from collections.abc import Callable, Sequence

import anthropic
import openai
import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from chatbridge.core.exceptions import (
    AppException,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimitError,
)
from chatbridge.core.settings import LLMConfig
from chatbridge.models.chat_session import Role, Turn

logger = structlog.get_logger()

ChatModelFactory = Callable[[str], BaseChatModel]

_AUTH_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
)
_RATE_LIMIT_ERRORS = (openai.RateLimitError, anthropic.RateLimitError)


def build_chat_model(llm_config: LLMConfig, api_key: str) -> BaseChatModel:
    """Create a chat model for the configured provider bound to one API key."""
    match llm_config.provider:
        case "openai":
            return ChatOpenAI(
                model=llm_config.model_name,
                api_key=SecretStr(api_key),
                max_retries=1,
            )
        case "anthropic":
            return ChatAnthropic(  # type: ignore[call-arg]
                model_name=llm_config.model_name,
                api_key=SecretStr(api_key),
                max_retries=1,
            )
        case _:
            raise ValueError(f"Unsupported LLM provider: {llm_config.provider}")


def classify_upstream_error(exc: Exception) -> AppException:
    """Map an SDK failure onto the Auth / RateLimit / Other taxonomy."""
    if isinstance(exc, _AUTH_ERRORS):
        return UpstreamAuthError()
    if isinstance(exc, _RATE_LIMIT_ERRORS):
        return UpstreamRateLimitError()
    return UpstreamError()


class CompletionService:
    """Sends a conversation to the provider and returns the assistant text.

    The system instruction is synthesized on every call and never stored in
    the session history.
    """

    def __init__(
        self,
        model_factory: ChatModelFactory,
        system_prompt: str,
        context_max_turns: int = 0,
    ) -> None:
        self._model_factory = model_factory
        self._system_prompt = system_prompt
        self._context_max_turns = context_max_turns

    def _context_window(self, history: Sequence[Turn]) -> Sequence[Turn]:
        """Most recent turns allowed into the request, starting on a user turn."""
        if self._context_max_turns <= 0:
            return history
        window = history[-self._context_max_turns :]
        while window and window[0].role is not Role.USER:
            window = window[1:]
        return window

    def build_messages(self, history: Sequence[Turn]) -> list[BaseMessage]:
        """System instruction followed by the conversation as LangChain messages."""
        messages: list[BaseMessage] = [SystemMessage(content=self._system_prompt)]
        for turn in self._context_window(history):
            if turn.role is Role.USER:
                messages.append(HumanMessage(content=turn.text))
            else:
                messages.append(AIMessage(content=turn.text))
        return messages

    async def complete(self, credential: str, history: Sequence[Turn]) -> str:
        """Return the assistant reply for the conversation so far.

        Raises:
            UpstreamAuthError: the provider rejected the credential.
            UpstreamRateLimitError: the provider is throttling the credential.
            UpstreamError: any other failure.
        """
        messages = self.build_messages(history)
        try:
            model = self._model_factory(credential)
            response = await model.ainvoke(messages)
        except Exception as exc:
            error = classify_upstream_error(exc)
            logger.warning(
                "Completion failed",
                code=error.code,
                error_type=type(exc).__name__,
            )
            raise error from exc

        content = response.content
        if isinstance(content, list):
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return str(content).strip()
