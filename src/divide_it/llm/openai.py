"""OpenAI chat completion provider."""

from __future__ import annotations

from typing import Any

from divide_it.errors import ConfigurationError, ExternalServiceError, wrap_external_error
from divide_it.llm.base import LLMConfig, LLMProviderType, SummarizationProvider
from divide_it.llm.prompts import SummaryPromptBuilder


class OpenAILLM(SummarizationProvider):
    """Summaries through the OpenAI chat completions API.

    Requires ``api_key`` in the config (``Settings.providers.openai_api_key``).
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        prompts: SummaryPromptBuilder | None = None,
    ):
        super().__init__(config or LLMConfig(provider=LLMProviderType.OPENAI), prompts)
        self._client: Any = None

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    def _get_api_key(self) -> str | None:
        return self.config.api_key

    def is_available(self) -> bool:
        return self._get_api_key() is not None

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self._get_api_key()
            if not api_key:
                raise ConfigurationError(
                    "OpenAI API key not configured. Set OPENAI_API_KEY or "
                    "set providers.openai_api_key in the config."
                )

            from openai import OpenAI

            self._client = OpenAI(api_key=api_key, timeout=self.config.timeout)
        return self._client

    def _complete(self, system: str, user: str, max_tokens: int, temperature: float) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            raise wrap_external_error(e, "OpenAI", "chat completion") from e

        if not response.choices:
            raise ExternalServiceError("OpenAI returned no choices", recoverable=False)
        return response.choices[0].message.content or ""
