# audible_assistant/pipeline.py
"""
Transcribe -> reply -> synthesize, the processing half of a turn
"""

import logging
from typing import Awaitable, Type, TypeVar

from .errors import (
    AssistantError,
    GenerationError,
    PipelineCancelled,
    SynthesisError,
    TranscriptionError,
)
from .history import ChatHistory
from .model_providers.base import ChatCompletionProvider, TextToSpeechProvider, TranscriptionProvider
from .state import AssistantState, VoiceType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag checked between pipeline stages"""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        self._cancelled = True

    def raise_if_cancelled(self):
        if self._cancelled:
            raise PipelineCancelled("Turn cancelled")


class InteractionPipeline:
    """Turns captured audio into reply audio, writing the transcript as it goes.

    The prompt is added to the transcript as soon as it is recognised and the
    reply as soon as it is generated, so a later failure leaves the partial
    turn visible. Once the token is cancelled nothing more is written.
    """

    def __init__(
        self,
        state: AssistantState,
        transcriber: TranscriptionProvider,
        chat: ChatCompletionProvider,
        tts: TextToSpeechProvider,
        history: ChatHistory,
        audio_filename: str = "recording.wav",
    ):
        self.state = state
        self.transcriber = transcriber
        self.chat = chat
        self.tts = tts
        self.history = history
        self.audio_filename = audio_filename

    async def run(self, audio: bytes, voice: VoiceType, token: CancellationToken) -> bytes:
        """Run all three stages; raises a stage error or PipelineCancelled"""
        token.raise_if_cancelled()
        prompt = await self._stage(
            self.transcriber.transcribe(audio, self.audio_filename), TranscriptionError, token
        )
        token.raise_if_cancelled()
        index = self.state.add_prompt(prompt)

        reply = await self._stage(
            self.chat.complete(self.history.messages_for(prompt)), GenerationError, token
        )
        token.raise_if_cancelled()
        self.state.set_reply(index, reply)
        self.history.record(prompt, reply)

        speech = await self._stage(self.tts.synthesize(reply, voice.value), SynthesisError, token)
        token.raise_if_cancelled()
        return speech

    async def _stage(self, call: Awaitable[T], error_type: Type[AssistantError], token: CancellationToken) -> T:
        try:
            return await call
        except AssistantError as e:
            if token.cancelled:
                raise PipelineCancelled("Turn cancelled") from e
            if isinstance(e, error_type):
                raise
            raise error_type(str(e)) from e
        except Exception as e:
            if token.cancelled:
                raise PipelineCancelled("Turn cancelled") from e
            logger.exception(f"Unexpected {error_type.__name__} in pipeline stage")
            raise error_type(str(e) or type(e).__name__) from e
