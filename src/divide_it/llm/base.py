"""Base classes for text summarization providers.

Providers implement one primitive, ``_complete`` (system prompt + user prompt
in, text out). Summaries and social copy are built on top of it here so every
backend applies the same prompts, limits and title cleanup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from divide_it.errors import RetryConfig, retry_with_backoff
from divide_it.llm.prompts import (
    DEFAULT_PROMPTS,
    DESCRIPTION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    TITLE_SYSTEM_PROMPT,
    SummaryPromptBuilder,
)
from divide_it.llm.social_copy import EMPTY_DESCRIPTION, FALLBACK_TITLE, SocialContent, clean_title
from divide_it.logging import get_logger

logger = get_logger(__name__)

EMPTY_SUMMARY = "No content to summarize."


class LLMProviderType(str, Enum):
    """Supported LLM provider types."""

    OPENAI = "openai"
    CLAUDE = "claude"
    OLLAMA = "ollama"


DEFAULT_MODELS = {
    LLMProviderType.OPENAI: "gpt-4o-mini",
    LLMProviderType.CLAUDE: "claude-sonnet-4-5",
    LLMProviderType.OLLAMA: "llama3.2",
}


@dataclass
class LLMConfig:
    """Configuration for an LLM provider.

    Attributes:
        provider: Which backend
        api_key: API key (or use the provider's environment variable)
        model: Model name, provider default when None
        summary_temperature: Sampling temperature for summaries
        description_temperature: Sampling temperature for descriptions
        title_temperature: Sampling temperature for titles
        timeout: Request timeout in seconds
        max_retries: Attempts per call for transient failures
    """

    provider: LLMProviderType = LLMProviderType.OPENAI
    api_key: str | None = None
    model: str | None = None
    summary_temperature: float = 0.3
    description_temperature: float = 0.7
    title_temperature: float = 0.6
    timeout: int = 120
    max_retries: int = 3

    def __post_init__(self):
        self.provider = LLMProviderType(self.provider)
        if self.model is None:
            self.model = DEFAULT_MODELS[self.provider]


class SummarizationProvider(ABC):
    """Turns a transcript into a summary and social copy."""

    def __init__(self, config: LLMConfig, prompts: SummaryPromptBuilder | None = None):
        self.config = config
        self.prompts = prompts or DEFAULT_PROMPTS

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether credentials or the local server are in place."""

    @abstractmethod
    def _complete(self, system: str, user: str, max_tokens: int, temperature: float) -> str:
        """Run one chat completion and return the reply text.

        Implementations raise DivideItError subclasses (via
        ``wrap_external_error``) so transient failures can be retried.
        """

    def complete(self, system: str, user: str, max_tokens: int, temperature: float) -> str:
        """``_complete`` with retries on transient and rate-limit errors."""
        call = retry_with_backoff(RetryConfig(max_attempts=self.config.max_retries))(self._complete)
        return (call(system, user, max_tokens, temperature) or "").strip()

    def summarize(self, text: str, style: str = "concise", max_length_words: int = 100) -> str:
        """Summarize a transcript.

        Args:
            text: Transcript
            style: "concise", "detailed", "bullet-points" or "social-media"
            max_length_words: Word budget for the summary

        Returns:
            Summary text; ``"No content to summarize."`` for blank input
        """
        if not text or not text.strip():
            return EMPTY_SUMMARY

        logger.info(
            f"Summarizing with {self.provider_name}",
            extra={"style": style, "max_words": max_length_words},
        )
        return self.complete(
            SUMMARY_SYSTEM_PROMPT,
            self.prompts.build_summary_prompt(text, style, max_length_words),
            max_tokens=min(max_length_words * 2, 500),
            temperature=self.config.summary_temperature,
        )

    def generate_social_content(self, text: str, max_length_words: int = 150) -> SocialContent:
        """Write a post description and a 5-7 word title.

        Args:
            text: Transcript
            max_length_words: Word budget for the description

        Returns:
            SocialContent; fixed placeholders for blank input
        """
        if not text or not text.strip():
            return SocialContent(title=FALLBACK_TITLE, description=EMPTY_DESCRIPTION)

        description = self.complete(
            DESCRIPTION_SYSTEM_PROMPT,
            self.prompts.build_description_prompt(text, max_length_words),
            max_tokens=min(max_length_words * 2, 300),
            temperature=self.config.description_temperature,
        )
        raw_title = self.complete(
            TITLE_SYSTEM_PROMPT,
            self.prompts.build_title_prompt(text),
            max_tokens=30,
            temperature=self.config.title_temperature,
        )

        content = SocialContent(title=clean_title(raw_title), description=description)
        logger.debug(f"Social title: {content.title}")
        return content
