"""Tests for ranked provider selection."""

from unittest.mock import patch

import pytest

from divide_it.config import Settings
from divide_it.llm import ClaudeLLM, OllamaLLM, OpenAILLM
from divide_it.providers import (
    build_summarizer,
    build_transcriber,
    provider_status,
    select_summarizer,
    select_transcriber,
)
from divide_it.transcription import (
    AssemblyAIProvider,
    DeepgramProvider,
    WhisperAPIProvider,
    WhisperLocalProvider,
)


@pytest.fixture(autouse=True)
def no_keys(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)


@pytest.fixture
def offline():
    """No Ollama server and no faster-whisper."""
    with patch.object(OllamaLLM, "is_available", return_value=False), \
         patch.object(WhisperLocalProvider, "is_available", return_value=False):
        yield


class TestBuild:
    """Tests for building providers by name."""

    def test_transcribers(self):
        settings = Settings()

        assert isinstance(build_transcriber("whisper_api", settings), WhisperAPIProvider)
        assert isinstance(build_transcriber("whisper_local", settings), WhisperLocalProvider)
        assert isinstance(build_transcriber("assemblyai", settings), AssemblyAIProvider)
        assert isinstance(build_transcriber("deepgram", settings), DeepgramProvider)

    def test_summarizers_get_keys_and_models(self):
        settings = Settings.from_env({"OPENAI_API_KEY": "sk", "ANTHROPIC_API_KEY": "ak"})
        settings.providers.claude_model = "claude-haiku-4-5"
        settings.providers.ollama_base_url = "http://box:11434"

        openai = build_summarizer("openai", settings)
        claude = build_summarizer("claude", settings)
        ollama = build_summarizer("ollama", settings)

        assert isinstance(openai, OpenAILLM) and openai.config.api_key == "sk"
        assert isinstance(claude, ClaudeLLM) and claude.config.model == "claude-haiku-4-5"
        assert isinstance(ollama, OllamaLLM) and ollama.base_url == "http://box:11434"

    def test_unknown_names(self):
        with pytest.raises(ValueError):
            build_transcriber("sphinx", Settings())
        with pytest.raises(ValueError):
            build_summarizer("gemini", Settings())


class TestSelect:
    """Tests for first-available selection."""

    def test_first_available_wins(self, offline):
        """The first configured provider with credentials is chosen."""
        settings = Settings.from_env({"OPENAI_API_KEY": "sk", "ANTHROPIC_API_KEY": "ak"})

        assert isinstance(select_transcriber(settings), WhisperAPIProvider)
        assert isinstance(select_summarizer(settings), OpenAILLM)

    def test_order_respected(self, offline):
        settings = Settings.from_env({"OPENAI_API_KEY": "sk", "ANTHROPIC_API_KEY": "ak"})
        settings.providers.llm_order = ["claude", "openai"]

        assert isinstance(select_summarizer(settings), ClaudeLLM)

    def test_fallback_to_later_provider(self, offline):
        settings = Settings.from_env({"ANTHROPIC_API_KEY": "ak"})

        assert isinstance(select_summarizer(settings), ClaudeLLM)

    def test_hosted_fallback(self, offline):
        """Without an OpenAI key the next hosted service with a key is used."""
        settings = Settings.from_env({"DEEPGRAM_API_KEY": "dg"})
        settings.providers.deepgram_model = "nova-3"

        transcriber = select_transcriber(settings)

        assert isinstance(transcriber, DeepgramProvider)
        assert transcriber._model == "nova-3"

    def test_local_fallback(self):
        with patch.object(WhisperLocalProvider, "is_available", return_value=True):
            assert isinstance(select_transcriber(Settings()), WhisperLocalProvider)

    def test_none_available(self, offline):
        assert select_transcriber(Settings()) is None
        assert select_summarizer(Settings()) is None


class TestProviderStatus:
    def test_rows(self, offline):
        rows = provider_status(Settings.from_env({"OPENAI_API_KEY": "sk"}))

        assert rows == [
            ("transcription", "whisper_api", True),
            ("transcription", "assemblyai", False),
            ("transcription", "deepgram", False),
            ("transcription", "whisper_local", False),
            ("summarization", "openai", True),
            ("summarization", "claude", False),
            ("summarization", "ollama", False),
        ]
