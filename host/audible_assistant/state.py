# audible_assistant/state.py
"""
Observable state for the voice assistant: mode, signal level, transcript and voice
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


class AssistantMode(Enum):
    """Assistant operational modes"""
    IDLE = "idle"                # Nothing held, ready to record
    RECORDING = "recording"      # Microphone held, waiting for silence
    PROCESSING = "processing"    # Transcribe -> reply -> synthesize in flight
    PLAYING = "playing"          # Speaker held, reply audio playing
    ERROR = "error"              # Last turn failed; message in error_message


class VoiceType(Enum):
    """Synthesis voices offered to the user"""
    ALLOY = "alloy"
    ECHO = "echo"
    FABLE = "fable"
    ONYX = "onyx"
    SHIMMER = "shimmer"

    @classmethod
    def parse(cls, name: str, default: Optional["VoiceType"] = None) -> "VoiceType":
        """Look up a voice by name, falling back to ``default`` when given"""
        try:
            return cls(name.strip().lower())
        except ValueError:
            if default is None:
                raise
            logger.warning(f"Unknown voice '{name}', using {default.value}")
            return default


@dataclass(frozen=True)
class TranscriptEntry:
    prompt: str
    reply: Optional[str] = None


class Transcript:
    """Chronological prompt/reply pairs; a reply is written at most once"""

    def __init__(self):
        self._entries: List[TranscriptEntry] = []

    def add_prompt(self, prompt: str) -> int:
        self._entries.append(TranscriptEntry(prompt))
        return len(self._entries) - 1

    def set_reply(self, index: int, reply: str):
        entry = self._entries[index]
        if entry.reply is not None:
            raise RuntimeError(f"Transcript entry {index} already has a reply")
        self._entries[index] = TranscriptEntry(entry.prompt, reply)

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.entries)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only view handed to renderers"""
    mode: AssistantMode
    error_message: Optional[str]
    audio_power: float
    transcript: Tuple[TranscriptEntry, ...]
    voice: VoiceType
    voices: Tuple[VoiceType, ...] = tuple(VoiceType)

    @property
    def is_idle(self) -> bool:
        return self.mode == AssistantMode.IDLE

    @property
    def shows_waveform(self) -> bool:
        return self.mode in (AssistantMode.RECORDING, AssistantMode.PLAYING)


StateListener = Callable[[StateSnapshot], None]


class AssistantState:
    """State owned by the conversation state machine and observed by the UI.

    Only the state machine (and the pipeline it launches) writes here; everything
    runs on the event loop, so no locking is needed.
    """

    def __init__(self, voice: VoiceType = VoiceType.ALLOY):
        self.mode = AssistantMode.IDLE
        self.error_message: Optional[str] = None
        self.audio_power = 0.0
        self.transcript = Transcript()
        self.voice = voice
        self._listeners: List[StateListener] = []

    def add_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_mode(self, new_mode: AssistantMode, error_message: Optional[str] = None):
        """Move to ``new_mode``; an error message is kept only in ERROR mode"""
        old_mode = self.mode
        self.mode = new_mode
        self.error_message = error_message if new_mode == AssistantMode.ERROR else None
        if new_mode == AssistantMode.ERROR:
            logger.info(f"Mode transition: {old_mode.value} -> {new_mode.value} ({error_message})")
        else:
            logger.info(f"Mode transition: {old_mode.value} -> {new_mode.value}")
        self.notify()

    def get_mode(self) -> AssistantMode:
        return self.mode

    @property
    def is_idle(self) -> bool:
        return self.mode == AssistantMode.IDLE

    def set_voice(self, voice: VoiceType):
        self.voice = voice
        logger.info(f"Voice set to {voice.value}")
        self.notify()

    def add_prompt(self, prompt: str) -> int:
        index = self.transcript.add_prompt(prompt)
        self.notify()
        return index

    def set_reply(self, index: int, reply: str):
        self.transcript.set_reply(index, reply)
        self.notify()

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            mode=self.mode,
            error_message=self.error_message,
            audio_power=self.audio_power,
            transcript=self.transcript.entries,
            voice=self.voice,
        )

    def notify(self):
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener failed: {e}")
