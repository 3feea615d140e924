"""Text summarization providers.

Summaries, post descriptions and short titles from a transcript, through
OpenAI, Claude or a local Ollama server.
"""

from divide_it.llm.base import (
    EMPTY_SUMMARY,
    LLMConfig,
    LLMProviderType,
    SummarizationProvider,
)
from divide_it.llm.claude import ClaudeLLM
from divide_it.llm.ollama import OllamaLLM
from divide_it.llm.openai import OpenAILLM
from divide_it.llm.prompts import SummaryPromptBuilder
from divide_it.llm.social_copy import SocialContent, clean_title

__all__ = [
    "EMPTY_SUMMARY",
    "LLMConfig",
    "LLMProviderType",
    "SummarizationProvider",
    "ClaudeLLM",
    "OllamaLLM",
    "OpenAILLM",
    "SummaryPromptBuilder",
    "SocialContent",
    "clean_title",
]
