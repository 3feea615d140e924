"""Claude (Anthropic) provider."""

from __future__ import annotations

from typing import Any

from divide_it.errors import ConfigurationError, ExternalServiceError, wrap_external_error
from divide_it.llm.base import LLMConfig, LLMProviderType, SummarizationProvider
from divide_it.llm.prompts import SummaryPromptBuilder


class ClaudeLLM(SummarizationProvider):
    """Summaries through the Anthropic Messages API.

    Requires ``api_key`` in the config (``Settings.providers.anthropic_api_key``).
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        prompts: SummaryPromptBuilder | None = None,
    ):
        super().__init__(config or LLMConfig(provider=LLMProviderType.CLAUDE), prompts)
        self._client: Any = None

    @property
    def provider_name(self) -> str:
        return "Claude (Anthropic)"

    def _get_api_key(self) -> str | None:
        return self.config.api_key

    def is_available(self) -> bool:
        return self._get_api_key() is not None

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self._get_api_key()
            if not api_key:
                raise ConfigurationError(
                    "Anthropic API key not configured. Set ANTHROPIC_API_KEY or "
                    "set providers.anthropic_api_key in the config."
                )

            from anthropic import Anthropic

            self._client = Anthropic(api_key=api_key, timeout=self.config.timeout)
        return self._client

    def _complete(self, system: str, user: str, max_tokens: int, temperature: float) -> str:
        client = self._get_client()
        try:
            response = client.messages.create(
                model=self.config.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except Exception as e:
            raise wrap_external_error(e, "Claude", "messages") from e

        parts = [block.text for block in response.content if getattr(block, "type", "text") == "text"]
        if not parts:
            raise ExternalServiceError("Claude returned no text", recoverable=False)
        return "".join(parts)
