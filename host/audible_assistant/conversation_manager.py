"""
ConversationStateMachine owns the mode, the pending operation and the
microphone/speaker sessions, and moves a turn through
idle -> recording -> processing -> playing -> idle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from audible_assistant.audio import AudioPlayer, AudioRecorder, SoundDevicePlayer, SoundDeviceRecorder
from audible_assistant.capture import CaptureSession
from audible_assistant.config import Config
from audible_assistant.errors import AssistantError, CaptureError, PipelineCancelled, PlaybackError
from audible_assistant.pipeline import CancellationToken, InteractionPipeline
from audible_assistant.playback import PlaybackSession
from audible_assistant.state import AssistantMode, AssistantState, VoiceType

log = logging.getLogger(__name__)


@dataclass(eq=False)
class PendingOperation:
    """Cancellation handle for the capture or pipeline currently in flight"""
    name: str
    cancel: Callable[[], None]


class ConversationStateMachine:
    """Single owner of the assistant's mutable state.

    Every method runs on the event loop. Hardware callbacks are marshalled onto
    it by the sessions, and the pipeline task resumes on it, so transitions
    never interleave.
    """

    def __init__(
        self,
        config: Config,
        state: AssistantState,
        pipeline: InteractionPipeline,
        recorder_factory: Callable[[], AudioRecorder] = SoundDeviceRecorder,
        player_factory: Callable[[], AudioPlayer] = SoundDevicePlayer,
    ) -> None:
        self.config = config
        self.state = state
        self.pipeline = pipeline
        self.recorder_factory = recorder_factory
        self.player_factory = player_factory

        self.capture: Optional[CaptureSession] = None
        self.playback: Optional[PlaybackSession] = None
        self.pending: Optional[PendingOperation] = None
        self._pipeline_task: Optional[asyncio.Task] = None

    @property
    def mode(self) -> AssistantMode:
        return self.state.mode

    # ------------------------------------------------------------------ #
    # ---------------------------  user events  ------------------------ #
    # ------------------------------------------------------------------ #
    def start_capture(self) -> bool:
        """Idle/Error -> Recording"""
        if self.mode not in (AssistantMode.IDLE, AssistantMode.ERROR):
            log.debug(f"Ignoring start while {self.mode.value}")
            return False

        self.state.audio_power = 0.0
        self.state.set_mode(AssistantMode.RECORDING)
        session = CaptureSession(
            self.recorder_factory,
            self.config,
            on_level=self._on_level,
            on_complete=self._on_capture_complete,
            on_interrupted=self._on_capture_interrupted,
        )
        try:
            session.start()
        except CaptureError as e:
            session.cancel()
            self._fail(e)
            return False

        self.capture = session
        self._set_pending(PendingOperation("capture", session.cancel))
        return True

    def finish_capture(self) -> bool:
        """End the recording now, as if silence had been detected"""
        if self.mode != AssistantMode.RECORDING or self.capture is None:
            log.debug(f"Ignoring finish while {self.mode.value}")
            return False
        self._on_capture_complete(self.capture.finish())
        return True

    def cancel(self) -> bool:
        """Any mode -> Idle, releasing whatever is held"""
        if self.mode == AssistantMode.IDLE:
            return False
        log.info(f"User cancelled while {self.mode.value}")
        self._release_all()
        self.state.set_mode(AssistantMode.IDLE)
        return True

    def select_voice(self, voice: VoiceType):
        """Change the synthesis voice; callers should only offer this while idle"""
        self.state.set_voice(voice)

    def report_error(self, error: AssistantError):
        """Surface a failure detected outside a turn (e.g. no microphone at launch)"""
        self._fail(error)

    async def shutdown(self):
        """Cancel everything and let the pipeline task unwind"""
        task = self._pipeline_task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # -------------------------  session events  ----------------------- #
    # ------------------------------------------------------------------ #
    def _on_level(self, level: float):
        self.state.audio_power = level

    def _on_capture_complete(self, audio: bytes):
        """Recording -> Processing"""
        if self.mode != AssistantMode.RECORDING:
            return
        self._retire_pending()
        self.capture = None
        self.state.audio_power = 0.0

        if not audio:
            self._fail(CaptureError("No audio was captured"))
            return

        self.state.set_mode(AssistantMode.PROCESSING)
        token = CancellationToken()
        operation = PendingOperation("pipeline", token.cancel)
        self._set_pending(operation)
        self._pipeline_task = asyncio.get_running_loop().create_task(
            self._process_speech(audio, token, operation)
        )

    def _on_capture_interrupted(self):
        if self.mode != AssistantMode.RECORDING:
            return
        self._fail(CaptureError("Recording was interrupted"))

    async def _process_speech(self, audio: bytes, token: CancellationToken, operation: PendingOperation):
        """Processing -> Playing, or Error on a stage failure"""
        try:
            speech = await self.pipeline.run(audio, self.state.voice, token)
        except PipelineCancelled:
            log.info("Processing cancelled; discarding results")
            return
        except AssistantError as e:
            if self.pending is operation:
                self._retire_pending()
                self._fail(e)
            return

        # Cancelled after the last stage resolved
        if self.pending is not operation:
            return
        self._retire_pending()
        self._start_playback(speech)

    def _start_playback(self, speech: bytes):
        self.state.set_mode(AssistantMode.PLAYING)
        session = PlaybackSession(
            self.player_factory,
            self.config,
            on_level=self._on_level,
            on_complete=self._on_playback_complete,
        )
        try:
            session.play(speech)
        except PlaybackError as e:
            session.cancel()
            self._fail(e)
            return
        self.playback = session

    def _on_playback_complete(self, success: bool):
        """Playing -> Idle"""
        if self.mode != AssistantMode.PLAYING:
            return
        self.playback = None
        self.state.audio_power = 0.0
        if success:
            self.state.set_mode(AssistantMode.IDLE)
        else:
            self._fail(PlaybackError("Playback was interrupted"))

    # ------------------------------------------------------------------ #
    # ---------------------------  resources  -------------------------- #
    # ------------------------------------------------------------------ #
    def _set_pending(self, operation: PendingOperation):
        if self.pending is not None:
            raise RuntimeError(
                f"Cannot start {operation.name} while {self.pending.name} is still pending"
            )
        self.pending = operation

    def _retire_pending(self):
        self.pending = None
        self._pipeline_task = None

    def _release_all(self):
        pending, task = self.pending, self._pipeline_task
        self._retire_pending()
        if pending is not None:
            pending.cancel()
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if self.capture is not None:
            self.capture.cancel()
            self.capture = None
        if self.playback is not None:
            self.playback.cancel()
            self.playback = None
        self.state.audio_power = 0.0

    def _fail(self, error: AssistantError):
        log.error(f"{type(error).__name__}: {error}")
        self._release_all()
        self.state.set_mode(AssistantMode.ERROR, str(error) or type(error).__name__)
