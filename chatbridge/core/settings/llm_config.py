"""LLM provider configuration."""

from typing import Literal

from pydantic import BaseModel

CREDENTIAL_PREFIXES: dict[str, str] = {
    "openai": "sk-",
    "anthropic": "sk-ant-",
}


class LLMConfig(BaseModel, frozen=True):
    """LLM provider settings.

    API keys are not configured here: every chat supplies its own key.
    """

    provider: Literal["openai", "anthropic"]
    openai_model: str
    anthropic_model: str
    system_prompt: str
    context_max_turns: int = 0
    credential_min_length: int = 40

    @property
    def model_name(self) -> str:
        """Model name for the active provider."""
        if self.provider == "anthropic":
            return self.anthropic_model
        return self.openai_model

    @property
    def credential_prefix(self) -> str:
        """Key prefix expected for the active provider."""
        return CREDENTIAL_PREFIXES[self.provider]
