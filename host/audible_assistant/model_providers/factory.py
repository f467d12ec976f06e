# audible_assistant/model_providers/factory.py
"""
Factory for creating model providers from configuration
"""

import logging

from ..config import Config
from .base import TranscriptionProvider, ChatCompletionProvider, TextToSpeechProvider
from .openai_provider import OpenAITranscriptionProvider, OpenAIChatProvider, OpenAITextToSpeechProvider
from .ollama_chat import OllamaChatProvider

logger = logging.getLogger(__name__)


class ModelProviderFactory:
    """Factory for creating model providers"""

    @staticmethod
    def _require_api_key(config: Config, purpose: str) -> str:
        if not config.openai_api_key:
            raise ValueError(f"OpenAI API key required for {purpose}")
        return config.openai_api_key

    @staticmethod
    def create_transcription_provider(config: Config) -> TranscriptionProvider:
        """Create a transcription provider"""
        return OpenAITranscriptionProvider(
            api_key=ModelProviderFactory._require_api_key(config, "transcription"),
            model=config.stt_model,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )

    @staticmethod
    def create_chat_provider(config: Config) -> ChatCompletionProvider:
        """Create a chat completion provider"""
        if config.chat_provider == "ollama":
            provider = OllamaChatProvider(
                host=config.ollama_host,
                model=config.local_chat_model,
                timeout=config.chat_timeout,
            )
            if not provider.test_connection():
                logger.warning(f"❌ Cannot reach Ollama at {config.ollama_host}; replies will fail until it is running")
            else:
                logger.info(f"✅ Using Ollama {config.local_chat_model} at {config.ollama_host}")
            return provider

        if config.chat_provider != "openai":
            logger.warning(f"Chat provider {config.chat_provider} not implemented, using OpenAI")

        logger.info(f"✅ Using OpenAI {config.chat_model}")
        return OpenAIChatProvider(
            api_key=ModelProviderFactory._require_api_key(config, "chat"),
            model=config.chat_model,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )

    @staticmethod
    def create_tts_provider(config: Config) -> TextToSpeechProvider:
        """Create a TTS provider"""
        return OpenAITextToSpeechProvider(
            api_key=ModelProviderFactory._require_api_key(config, "TTS"),
            model=config.tts_model,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )
