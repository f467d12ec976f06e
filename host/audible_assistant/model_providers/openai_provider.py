# audible_assistant/model_providers/openai_provider.py
"""
OpenAI implementation of model providers
"""

import asyncio
import io
import logging
from typing import Any, Dict, List
from openai import OpenAI, OpenAIError

from ..errors import GenerationError, SynthesisError, TranscriptionError
from ..utils import retry_with_backoff
from .base import TranscriptionProvider, ChatCompletionProvider, TextToSpeechProvider

logger = logging.getLogger(__name__)


class OpenAITranscriptionProvider(TranscriptionProvider):
    """OpenAI Whisper API implementation"""

    def __init__(self, api_key: str, model: str = "whisper-1", max_retries: int = 2, retry_delay: float = 1.0):
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def transcribe(self, audio: bytes, filename: str = "recording.wav") -> str:
        """Transcribe audio using OpenAI Whisper"""
        loop = asyncio.get_running_loop()

        def _transcribe():
            audio_buffer = io.BytesIO(audio)
            audio_buffer.name = filename
            response = self.client.audio.transcriptions.create(
                model=self.model,
                file=audio_buffer,
            )
            return response.text.strip()

        try:
            text = await retry_with_backoff(
                lambda: loop.run_in_executor(None, _transcribe),
                self.max_retries,
                self.retry_delay,
            )
        except OpenAIError as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        if not text:
            raise TranscriptionError("No speech recognised")
        logger.info(f"Transcribed: {text[:100]}")
        return text


class OpenAIChatProvider(ChatCompletionProvider):
    """OpenAI Chat completion provider"""

    def __init__(self, api_key: str, model: str = "gpt-4o", temperature: float = 0.7, max_retries: int = 2, retry_delay: float = 1.0):
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Create a chat completion using OpenAI"""
        loop = asyncio.get_running_loop()

        def _complete():
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
            if not completion.choices:
                return ""
            return (completion.choices[0].message.content or "").strip()

        try:
            reply = await retry_with_backoff(
                lambda: loop.run_in_executor(None, _complete),
                self.max_retries,
                self.retry_delay,
            )
        except OpenAIError as e:
            raise GenerationError(f"Reply generation failed: {e}") from e

        if not reply:
            raise GenerationError("Model returned an empty reply")
        logger.info(f"Reply from {self.model}: {reply[:100]}")
        return reply


class OpenAITextToSpeechProvider(TextToSpeechProvider):
    """OpenAI TTS API implementation"""

    def __init__(self, api_key: str, model: str = "tts-1", response_format: str = "wav", max_retries: int = 2, retry_delay: float = 1.0):
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.response_format = response_format
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def synthesize(self, text: str, voice: str) -> bytes:
        """Convert text to speech using OpenAI"""
        loop = asyncio.get_running_loop()

        def _synthesize():
            response = self.client.audio.speech.create(
                model=self.model,
                voice=voice,
                input=text,
                response_format=self.response_format,
            )
            return response.read()

        try:
            audio = await retry_with_backoff(
                lambda: loop.run_in_executor(None, _synthesize),
                self.max_retries,
                self.retry_delay,
            )
        except OpenAIError as e:
            raise SynthesisError(f"Speech synthesis failed: {e}") from e

        if not audio:
            raise SynthesisError("Speech service returned no audio")
        logger.info(f"Synthesized {len(audio)} bytes with voice {voice}")
        return audio
