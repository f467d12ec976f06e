import unittest
from unittest.mock import Mock

import fakes  # noqa: F401
from audible_assistant.history import ChatHistory, SYSTEM_PROMPT
from audible_assistant.state import (
    AssistantMode,
    AssistantState,
    StateSnapshot,
    Transcript,
    TranscriptEntry,
    VoiceType,
)


class TestTranscript(unittest.TestCase):
    def test_prompt_then_reply(self):
        transcript = Transcript()
        index = transcript.add_prompt("hello")
        self.assertEqual(transcript.entries, (TranscriptEntry("hello", None),))

        transcript.set_reply(index, "hi there")
        self.assertEqual(transcript.entries, (TranscriptEntry("hello", "hi there"),))
        self.assertEqual(len(transcript), 1)

    def test_reply_is_written_once(self):
        transcript = Transcript()
        index = transcript.add_prompt("hello")
        transcript.set_reply(index, "hi there")
        with self.assertRaises(RuntimeError):
            transcript.set_reply(index, "something else")
        self.assertEqual(transcript.entries[0].reply, "hi there")

    def test_entries_keep_insertion_order(self):
        transcript = Transcript()
        for prompt in ("one", "two", "three"):
            transcript.add_prompt(prompt)
        self.assertEqual([entry.prompt for entry in transcript], ["one", "two", "three"])


class TestAssistantState(unittest.TestCase):
    def test_initial_state(self):
        state = AssistantState()
        self.assertEqual(state.get_mode(), AssistantMode.IDLE)
        self.assertTrue(state.is_idle)
        self.assertEqual(state.audio_power, 0.0)
        self.assertEqual(len(state.transcript), 0)
        self.assertEqual(state.voice, VoiceType.ALLOY)

    def test_error_message_only_kept_in_error_mode(self):
        state = AssistantState()
        state.set_mode(AssistantMode.ERROR, "Microphone unavailable")
        self.assertEqual(state.error_message, "Microphone unavailable")

        state.set_mode(AssistantMode.RECORDING)
        self.assertIsNone(state.error_message)

        state.set_mode(AssistantMode.IDLE, "ignored")
        self.assertIsNone(state.error_message)

    def test_listeners_receive_snapshots(self):
        state = AssistantState()
        listener = Mock()
        state.add_listener(listener)

        state.set_mode(AssistantMode.RECORDING)
        state.set_reply(state.add_prompt("hello"), "hi")
        state.set_voice(VoiceType.ECHO)

        self.assertEqual(listener.call_count, 4)
        last = listener.call_args[0][0]
        self.assertIsInstance(last, StateSnapshot)
        self.assertEqual(last.voice, VoiceType.ECHO)
        self.assertEqual(last.transcript, (TranscriptEntry("hello", "hi"),))

        state.remove_listener(listener)
        state.set_mode(AssistantMode.IDLE)
        self.assertEqual(listener.call_count, 4)

    def test_failing_listener_does_not_block_others(self):
        state = AssistantState()
        broken = Mock(side_effect=ValueError("render failed"))
        healthy = Mock()
        state.add_listener(broken)
        state.add_listener(healthy)

        state.set_mode(AssistantMode.PROCESSING)
        healthy.assert_called_once()

    def test_snapshot_properties(self):
        state = AssistantState(VoiceType.SHIMMER)
        snapshot = state.snapshot()
        self.assertTrue(snapshot.is_idle)
        self.assertFalse(snapshot.shows_waveform)
        self.assertEqual(snapshot.voices, tuple(VoiceType))

        for mode, waveform in (
            (AssistantMode.RECORDING, True),
            (AssistantMode.PROCESSING, False),
            (AssistantMode.PLAYING, True),
            (AssistantMode.ERROR, False),
        ):
            state.set_mode(mode, "boom")
            self.assertEqual(state.snapshot().shows_waveform, waveform, mode)
            self.assertFalse(state.snapshot().is_idle)


class TestVoiceType(unittest.TestCase):
    def test_parse(self):
        self.assertEqual(VoiceType.parse("Onyx"), VoiceType.ONYX)
        self.assertEqual(VoiceType.parse(" fable "), VoiceType.FABLE)

    def test_parse_unknown(self):
        with self.assertRaises(ValueError):
            VoiceType.parse("robot")
        self.assertEqual(VoiceType.parse("robot", default=VoiceType.ALLOY), VoiceType.ALLOY)

    def test_fixed_voice_set(self):
        self.assertEqual([voice.value for voice in VoiceType], ["alloy", "echo", "fable", "onyx", "shimmer"])


class TestChatHistory(unittest.TestCase):
    def test_starts_with_system_prompt(self):
        history = ChatHistory()
        self.assertEqual(history.messages, [{"role": "system", "content": SYSTEM_PROMPT}])

    def test_messages_for_does_not_mutate(self):
        history = ChatHistory()
        messages = history.messages_for("hello")
        self.assertEqual(messages[-1], {"role": "user", "content": "hello"})
        self.assertEqual(len(history), 1)

    def test_record_and_trim(self):
        history = ChatHistory(max_messages=4)
        for i in range(5):
            history.record(f"Message {i}", f"Response {i}")

        self.assertEqual(len(history), 5)
        self.assertEqual(history.messages[0]["role"], "system")
        self.assertEqual(history.messages[1], {"role": "user", "content": "Message 3"})
        self.assertEqual(history.messages[-1], {"role": "assistant", "content": "Response 4"})

    def test_trim_keeps_whole_exchanges(self):
        history = ChatHistory(max_messages=3)
        for i in range(3):
            history.record(f"Message {i}", f"Response {i}")

        self.assertEqual(
            history.messages[1:],
            [{"role": "user", "content": "Message 2"}, {"role": "assistant", "content": "Response 2"}],
        )
        for i in range(10):
            history.record(f"More {i}", f"Reply {i}")
            self.assertEqual(history.messages[1]["role"], "user")
            self.assertLessEqual(len(history) - 1, 3)

    def test_reset(self):
        history = ChatHistory()
        history.record("hello", "hi")
        history.reset()
        self.assertEqual(len(history), 1)


if __name__ == "__main__":
    unittest.main()
