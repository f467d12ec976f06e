# audible_assistant/model_providers/base.py
"""
Base interfaces for the three remote services a turn depends on
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class TranscriptionProvider(ABC):
    """Base interface for speech-to-text providers"""

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "recording.wav") -> str:
        """Transcribe audio to text; raises TranscriptionError"""
        pass


class ChatCompletionProvider(ABC):
    """Base interface for chat completion providers"""

    @abstractmethod
    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Return the assistant reply for ``messages``; raises GenerationError"""
        pass


class TextToSpeechProvider(ABC):
    """Base interface for text-to-speech providers"""

    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> bytes:
        """Convert text to encoded speech audio; raises SynthesisError"""
        pass
