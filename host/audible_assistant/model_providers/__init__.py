"""
Speech-to-text, reply and text-to-speech services used by a turn
"""

from .base import (
    TranscriptionProvider,
    ChatCompletionProvider,
    TextToSpeechProvider
)

from .factory import ModelProviderFactory

__all__ = [
    'TranscriptionProvider',
    'ChatCompletionProvider',
    'TextToSpeechProvider',
    'ModelProviderFactory'
]
