import asyncio
import unittest
from unittest.mock import AsyncMock

import fakes  # noqa: F401
from audible_assistant.errors import (
    GenerationError,
    PipelineCancelled,
    SynthesisError,
    TranscriptionError,
)
from audible_assistant.history import ChatHistory
from audible_assistant.pipeline import CancellationToken, InteractionPipeline
from audible_assistant.state import AssistantState, TranscriptEntry, VoiceType


class TestInteractionPipeline(unittest.IsolatedAsyncioTestCase):
    """Transcribe, reply, synthesize"""

    def setUp(self):
        self.state = AssistantState()
        self.history = ChatHistory()
        self.transcriber = AsyncMock()
        self.transcriber.transcribe.return_value = "hello"
        self.chat = AsyncMock()
        self.chat.complete.return_value = "hi there"
        self.tts = AsyncMock()
        self.tts.synthesize.return_value = b"reply-audio"
        self.pipeline = InteractionPipeline(
            self.state, self.transcriber, self.chat, self.tts, self.history
        )

    async def test_successful_turn(self):
        speech = await self.pipeline.run(b"captured", VoiceType.ONYX, CancellationToken())

        self.assertEqual(speech, b"reply-audio")
        self.transcriber.transcribe.assert_awaited_once_with(b"captured", "recording.wav")
        self.tts.synthesize.assert_awaited_once_with("hi there", "onyx")
        self.assertEqual(self.state.transcript.entries, (TranscriptEntry("hello", "hi there"),))

        messages = self.chat.complete.await_args[0][0]
        self.assertEqual(messages[0]["role"], "system")
        self.assertEqual(messages[-1], {"role": "user", "content": "hello"})
        self.assertEqual(len(self.history), 3)

    async def test_history_carries_into_next_turn(self):
        await self.pipeline.run(b"one", VoiceType.ALLOY, CancellationToken())
        self.transcriber.transcribe.return_value = "and then?"
        await self.pipeline.run(b"two", VoiceType.ALLOY, CancellationToken())

        messages = self.chat.complete.await_args[0][0]
        self.assertEqual(
            [m["content"] for m in messages[1:]],
            ["hello", "hi there", "and then?"],
        )
        self.assertEqual(len(self.state.transcript), 2)

    async def test_transcription_failure_adds_nothing(self):
        self.state.add_prompt("earlier")
        self.transcriber.transcribe.side_effect = TranscriptionError("service down")

        with self.assertRaises(TranscriptionError):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, CancellationToken())
        self.assertEqual(len(self.state.transcript), 1)
        self.chat.complete.assert_not_awaited()

    async def test_generation_failure_keeps_prompt_without_reply(self):
        self.chat.complete.side_effect = GenerationError("model overloaded")

        with self.assertRaises(GenerationError):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, CancellationToken())
        self.assertEqual(self.state.transcript.entries, (TranscriptEntry("hello", None),))
        self.assertEqual(len(self.history), 1)
        self.tts.synthesize.assert_not_awaited()

    async def test_synthesis_failure_keeps_full_entry(self):
        self.tts.synthesize.side_effect = SynthesisError("voice unavailable")

        with self.assertRaises(SynthesisError):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, CancellationToken())
        self.assertEqual(self.state.transcript.entries, (TranscriptEntry("hello", "hi there"),))

    async def test_unexpected_exception_maps_to_stage_error(self):
        self.chat.complete.side_effect = KeyError("choices")
        with self.assertRaises(GenerationError):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, CancellationToken())

        self.transcriber.transcribe.side_effect = GenerationError("wrong layer")
        with self.assertRaises(TranscriptionError):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, CancellationToken())

    async def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(PipelineCancelled):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, token)
        self.transcriber.transcribe.assert_not_awaited()

    async def test_cancel_during_generation_discards_reply(self):
        token = CancellationToken()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_reply(messages):
            started.set()
            await release.wait()
            return "too late"

        self.chat.complete.side_effect = slow_reply
        task = asyncio.create_task(self.pipeline.run(b"captured", VoiceType.ALLOY, token))
        await started.wait()
        token.cancel()
        release.set()

        with self.assertRaises(PipelineCancelled):
            await task
        self.assertEqual(self.state.transcript.entries, (TranscriptEntry("hello", None),))
        self.assertEqual(len(self.history), 1)
        self.tts.synthesize.assert_not_awaited()

    async def test_error_after_cancel_is_reported_as_cancellation(self):
        token = CancellationToken()

        async def failing_reply(messages):
            token.cancel()
            raise GenerationError("connection reset")

        self.chat.complete.side_effect = failing_reply
        with self.assertRaises(PipelineCancelled):
            await self.pipeline.run(b"captured", VoiceType.ALLOY, token)


class TestCancellationToken(unittest.TestCase):
    def test_cancel(self):
        token = CancellationToken()
        self.assertFalse(token.cancelled)
        token.raise_if_cancelled()
        token.cancel()
        self.assertTrue(token.cancelled)
        with self.assertRaises(PipelineCancelled):
            token.raise_if_cancelled()


if __name__ == "__main__":
    unittest.main()
