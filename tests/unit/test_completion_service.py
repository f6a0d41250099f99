"""Unit tests for CompletionService."""

from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from chatbridge.core.exceptions import UpstreamAuthError, UpstreamError, UpstreamRateLimitError
from chatbridge.core.settings import LLMConfig
from chatbridge.models.chat_session import Role, Turn
from chatbridge.services.completion_service import (
    CompletionService,
    build_chat_model,
    classify_upstream_error,
)
from tests.conftest import VALID_KEY

SYSTEM_PROMPT = "You are a test assistant."


def _status_response(status_code: int, url: str) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", url))


def _openai_error(cls: type[openai.APIStatusError], status_code: int) -> openai.APIStatusError:
    response = _status_response(status_code, "https://api.openai.com/v1/chat/completions")
    return cls("error", response=response, body=None)


def _anthropic_error(
    cls: type[anthropic.APIStatusError], status_code: int
) -> anthropic.APIStatusError:
    response = _status_response(status_code, "https://api.anthropic.com/v1/messages")
    return cls("error", response=response, body=None)


def _llm_config(provider: str = "openai") -> LLMConfig:
    return LLMConfig(
        provider=provider,  # type: ignore[arg-type]
        openai_model="gpt-4o-mini",
        anthropic_model="claude-sonnet-4-20250514",
        system_prompt=SYSTEM_PROMPT,
    )


@pytest.fixture
def mock_llm() -> MagicMock:
    """Create a mock chat model."""
    mock = MagicMock()
    mock.ainvoke = AsyncMock(return_value=AIMessage(content="  Hello there  "))
    return mock


@pytest.fixture
def model_factory(mock_llm: MagicMock) -> MagicMock:
    return MagicMock(return_value=mock_llm)


@pytest.fixture
def completion_service(model_factory: MagicMock) -> CompletionService:
    return CompletionService(model_factory=model_factory, system_prompt=SYSTEM_PROMPT)


class TestBuildChatModel:
    def test_openai(self) -> None:
        model = build_chat_model(_llm_config("openai"), VALID_KEY)
        assert isinstance(model, ChatOpenAI)

    def test_anthropic(self) -> None:
        model = build_chat_model(_llm_config("anthropic"), "sk-ant-" + "x" * 40)
        assert isinstance(model, ChatAnthropic)

    def test_unsupported_provider(self) -> None:
        config = LLMConfig.model_construct(
            provider="mistral",
            openai_model="",
            anthropic_model="",
            system_prompt="",
        )
        with pytest.raises(ValueError, match="Unsupported LLM provider"):
            build_chat_model(config, VALID_KEY)


class TestClassifyUpstreamError:
    """SDK exceptions map onto Auth / RateLimit / Other."""

    @pytest.mark.parametrize(
        "exc",
        [
            _openai_error(openai.AuthenticationError, 401),
            _openai_error(openai.PermissionDeniedError, 403),
            _anthropic_error(anthropic.AuthenticationError, 401),
            _anthropic_error(anthropic.PermissionDeniedError, 403),
        ],
    )
    def test_auth(self, exc: Exception) -> None:
        assert isinstance(classify_upstream_error(exc), UpstreamAuthError)

    @pytest.mark.parametrize(
        "exc",
        [
            _openai_error(openai.RateLimitError, 429),
            _anthropic_error(anthropic.RateLimitError, 429),
        ],
    )
    def test_rate_limit(self, exc: Exception) -> None:
        assert isinstance(classify_upstream_error(exc), UpstreamRateLimitError)

    @pytest.mark.parametrize(
        "exc",
        [
            _openai_error(openai.InternalServerError, 500),
            _anthropic_error(anthropic.BadRequestError, 400),
            TimeoutError(),
            RuntimeError("boom"),
        ],
    )
    def test_other(self, exc: Exception) -> None:
        error = classify_upstream_error(exc)
        assert type(error) is UpstreamError


class TestBuildMessages:
    """Conversion of history into LangChain messages."""

    def test_system_prompt_comes_first(self, completion_service: CompletionService) -> None:
        messages = completion_service.build_messages([Turn(Role.USER, "hi")])

        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == SYSTEM_PROMPT
        assert isinstance(messages[1], HumanMessage)
        assert len(messages) == 2

    def test_roles_map_in_order(self, completion_service: CompletionService) -> None:
        history = [
            Turn(Role.USER, "q1"),
            Turn(Role.ASSISTANT, "a1"),
            Turn(Role.USER, "q2"),
        ]

        messages = completion_service.build_messages(history)

        assert [type(m) for m in messages[1:]] == [HumanMessage, AIMessage, HumanMessage]
        assert [m.content for m in messages[1:]] == ["q1", "a1", "q2"]

    def test_whole_history_by_default(self, completion_service: CompletionService) -> None:
        history = [Turn(Role.USER if i % 2 == 0 else Role.ASSISTANT, str(i)) for i in range(51)]
        assert len(completion_service.build_messages(history)) == 52

    def test_context_window_starts_on_user_turn(self, model_factory: MagicMock) -> None:
        service = CompletionService(model_factory, SYSTEM_PROMPT, context_max_turns=4)
        history = [
            Turn(Role.USER, "q1"),
            Turn(Role.ASSISTANT, "a1"),
            Turn(Role.USER, "q2"),
            Turn(Role.ASSISTANT, "a2"),
            Turn(Role.USER, "q3"),
        ]

        messages = service.build_messages(history)

        assert [m.content for m in messages[1:]] == ["q2", "a2", "q3"]


class TestComplete:
    """Tests for CompletionService.complete."""

    async def test_returns_stripped_text(
        self,
        completion_service: CompletionService,
        model_factory: MagicMock,
        mock_llm: MagicMock,
    ) -> None:
        answer = await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])

        assert answer == "Hello there"
        model_factory.assert_called_once_with(VALID_KEY)
        sent = mock_llm.ainvoke.await_args.args[0]
        assert [type(m) for m in sent] == [SystemMessage, HumanMessage]

    async def test_content_blocks_are_joined(
        self, completion_service: CompletionService, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.return_value = AIMessage(
            content=[{"type": "text", "text": "Hello"}, {"type": "text", "text": " world"}]
        )

        answer = await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])

        assert answer == "Hello world"

    async def test_auth_failure(
        self, completion_service: CompletionService, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = _openai_error(openai.AuthenticationError, 401)

        with pytest.raises(UpstreamAuthError):
            await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])

    async def test_rate_limit(
        self, completion_service: CompletionService, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = _anthropic_error(anthropic.RateLimitError, 429)

        with pytest.raises(UpstreamRateLimitError):
            await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])

    async def test_other_failure_chains_cause(
        self, completion_service: CompletionService, mock_llm: MagicMock
    ) -> None:
        cause = RuntimeError("connection reset")
        mock_llm.ainvoke.side_effect = cause

        with pytest.raises(UpstreamError) as exc_info:
            await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])

        assert exc_info.value.__cause__ is cause

    async def test_factory_failure_is_classified(
        self, completion_service: CompletionService, model_factory: MagicMock
    ) -> None:
        model_factory.side_effect = ValueError("bad key")

        with pytest.raises(UpstreamError):
            await completion_service.complete(VALID_KEY, [Turn(Role.USER, "hi")])
