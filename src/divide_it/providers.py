"""Choosing transcription and summarization providers.

Each kind has a ranked list in ``ProviderSettings``. The first provider
that reports itself available is used for the whole run; the choice is made
once, when the pipeline is built.
"""

from __future__ import annotations

from divide_it.config import Settings
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.llm.base import LLMConfig, LLMProviderType, SummarizationProvider
from divide_it.llm.claude import ClaudeLLM
from divide_it.llm.ollama import OllamaLLM
from divide_it.llm.openai import OpenAILLM
from divide_it.logging import get_logger
from divide_it.transcription.assemblyai import AssemblyAIProvider
from divide_it.transcription.base import TranscriptionProvider
from divide_it.transcription.deepgram import DeepgramProvider
from divide_it.transcription.whisper_api import WhisperAPIProvider
from divide_it.transcription.whisper_local import WhisperLocalProvider

logger = get_logger(__name__)

LLM_PROVIDERS = tuple(p.value for p in LLMProviderType)


def build_transcriber(
    name: str,
    settings: Settings,
    transcoder: FFmpegWrapper | None = None,
) -> TranscriptionProvider:
    """Instantiate a transcription provider by name.

    Raises:
        ValueError: If the name is unknown
    """
    providers = settings.providers
    if name == "whisper_api":
        return WhisperAPIProvider(
            api_key=providers.openai_api_key,
            model=providers.whisper_api_model,
            transcoder=transcoder,
            max_retries=providers.max_retries,
            timeout=providers.timeout,
        )
    if name == "assemblyai":
        return AssemblyAIProvider(
            api_key=providers.assemblyai_api_key,
            speech_model=providers.assemblyai_speech_model,
            transcoder=transcoder,
            max_retries=providers.max_retries,
            timeout=providers.timeout,
        )
    if name == "deepgram":
        return DeepgramProvider(
            api_key=providers.deepgram_api_key,
            model=providers.deepgram_model,
            transcoder=transcoder,
            max_retries=providers.max_retries,
            timeout=providers.timeout,
        )
    if name == "whisper_local":
        return WhisperLocalProvider(model=providers.whisper_local_model)
    raise ValueError(f"Unsupported transcription provider: {name}")


def get_llm_provider(config: LLMConfig | None = None, ollama_base_url: str | None = None) -> SummarizationProvider:
    """Factory for a summarization provider.

    Args:
        config: LLM configuration
        ollama_base_url: Server address for the Ollama provider

    Returns:
        Provider instance for ``config.provider``
    """
    config = config or LLMConfig()
    if config.provider == LLMProviderType.OPENAI:
        return OpenAILLM(config)
    if config.provider == LLMProviderType.CLAUDE:
        return ClaudeLLM(config)
    return OllamaLLM(config, base_url=ollama_base_url)


def build_summarizer(name: str, settings: Settings) -> SummarizationProvider:
    """Instantiate a summarization provider by name.

    Raises:
        ValueError: If the name is unknown
    """
    if name not in LLM_PROVIDERS:
        raise ValueError(f"Unsupported LLM provider: {name}")

    providers = settings.providers
    provider_type = LLMProviderType(name)
    api_key = {
        LLMProviderType.OPENAI: providers.openai_api_key,
        LLMProviderType.CLAUDE: providers.anthropic_api_key,
        LLMProviderType.OLLAMA: None,
    }[provider_type]
    model = {
        LLMProviderType.OPENAI: providers.openai_model,
        LLMProviderType.CLAUDE: providers.claude_model,
        LLMProviderType.OLLAMA: providers.ollama_model,
    }[provider_type]

    config = LLMConfig(
        provider=provider_type,
        api_key=api_key,
        model=model,
        timeout=providers.timeout,
        max_retries=providers.max_retries,
    )
    return get_llm_provider(config, ollama_base_url=providers.ollama_base_url)


def select_transcriber(
    settings: Settings,
    transcoder: FFmpegWrapper | None = None,
) -> TranscriptionProvider | None:
    """First available transcription provider in ranked order, or None."""
    for name in settings.providers.transcription_order:
        provider = build_transcriber(name, settings, transcoder)
        if provider.is_available():
            logger.info(f"Using transcription provider: {provider.name}")
            return provider
        logger.debug(f"Transcription provider unavailable: {name}")

    logger.warning("No transcription provider available; enrichment will be skipped")
    return None


def select_summarizer(settings: Settings) -> SummarizationProvider | None:
    """First available summarization provider in ranked order, or None."""
    for name in settings.providers.llm_order:
        provider = build_summarizer(name, settings)
        if provider.is_available():
            logger.info(f"Using summarization provider: {provider.provider_name}")
            return provider
        logger.debug(f"Summarization provider unavailable: {name}")

    logger.warning("No summarization provider available; summaries will be skipped")
    return None


def provider_status(settings: Settings) -> list[tuple[str, str, bool]]:
    """(kind, name, available) for every ranked provider, in order."""
    rows = []
    for name in settings.providers.transcription_order:
        rows.append(("transcription", name, build_transcriber(name, settings).is_available()))
    for name in settings.providers.llm_order:
        rows.append(("summarization", name, build_summarizer(name, settings).is_available()))
    return rows
