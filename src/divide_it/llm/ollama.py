"""Ollama provider for locally hosted models.

Talks to the Ollama HTTP API (``/api/chat``). No API key; availability is
a quick probe of ``/api/tags``.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any

from divide_it.errors import ExternalServiceError, TransientError
from divide_it.llm.base import LLMConfig, LLMProviderType, SummarizationProvider
from divide_it.llm.prompts import SummaryPromptBuilder

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaLLM(SummarizationProvider):
    """Summaries from a model served by Ollama."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        base_url: str | None = None,
        prompts: SummaryPromptBuilder | None = None,
    ):
        super().__init__(config or LLMConfig(provider=LLMProviderType.OLLAMA), prompts)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")

    @property
    def provider_name(self) -> str:
        return f"Ollama ({self.config.model})"

    def is_available(self) -> bool:
        try:
            req = urllib.request.Request(f"{self.base_url}/api/tags", method="GET")
            with urllib.request.urlopen(req, timeout=5) as response:
                return response.status == 200
        except (urllib.error.URLError, TimeoutError, OSError):
            return False

    def _make_request(self, payload: dict[str, Any]) -> dict[str, Any]:
        req = urllib.request.Request(
            f"{self.base_url}/api/chat",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                return json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raise ExternalServiceError(
                f"Ollama API error: {e.code} {e.reason}",
                context={"service": "ollama"},
                recoverable=e.code >= 500,
            ) from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise TransientError(
                f"Cannot connect to Ollama at {self.base_url}. "
                "Make sure Ollama is running: ollama serve",
                context={"service": "ollama"},
            ) from e
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Invalid response from Ollama: {e}", recoverable=False) from e

    def _complete(self, system: str, user: str, max_tokens: int, temperature: float) -> str:
        data = self._make_request({
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        })
        return data.get("message", {}).get("content", "")
