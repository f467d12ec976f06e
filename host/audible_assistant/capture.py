# audible_assistant/capture.py
"""
Microphone ownership for a single recording turn
"""

import asyncio
import logging
from typing import Callable, Optional

from .audio import AudioRecorder, SignalMeter
from .config import Config
from .errors import CaptureError
from .silence import SilenceDecision, SilenceDetector
from .utils import PeriodicSampler

logger = logging.getLogger(__name__)


class CaptureSession:
    """Records until the silence heuristic fires or the caller stops it.

    Two samplers run while the microphone is held: a fast one that publishes
    the signal level for the UI and a slow one that feeds the SilenceDetector.
    Both check that the recorder is still held before touching it.
    """

    def __init__(
        self,
        recorder_factory: Callable[[], AudioRecorder],
        config: Config,
        on_level: Callable[[float], None],
        on_complete: Callable[[bytes], None],
        on_interrupted: Callable[[], None],
    ):
        self.recorder_factory = recorder_factory
        self.settings = config.capture_settings()
        self.divisor = config.capture_power_divisor
        self.on_level = on_level
        self.on_complete = on_complete
        self.on_interrupted = on_interrupted

        self.detector = SilenceDetector(
            config.silence_previous_threshold,
            config.silence_current_threshold,
        )
        self.level_sampler = PeriodicSampler(config.meter_interval, self._sample_level, "capture-meter")
        self.silence_sampler = PeriodicSampler(config.silence_check_interval, self._check_silence, "silence-check")

        self.recorder: Optional[AudioRecorder] = None
        self.meter: Optional[SignalMeter] = None
        self._buffer = b""

    @property
    def active(self) -> bool:
        return self.recorder is not None

    @property
    def samplers_running(self) -> bool:
        return self.level_sampler.running or self.silence_sampler.running

    def start(self):
        """Acquire the microphone and start both samplers; raises CaptureError"""
        if self.recorder is not None:
            raise RuntimeError("Capture session already started")

        self.detector.reset()
        self._buffer = b""
        loop = asyncio.get_running_loop()
        recorder = self.recorder_factory()
        recorder.on_finished = lambda success: loop.call_soon_threadsafe(
            self._recorder_finished, recorder, success
        )
        recorder.start(self.settings)

        self.recorder = recorder
        self.meter = SignalMeter(recorder, self.divisor)
        self.level_sampler.start()
        self.silence_sampler.start()

    def finish(self) -> bytes:
        """Stop recording and return the captured audio; repeat calls return the last buffer"""
        if self.recorder is None:
            return self._buffer

        recorder = self._release()
        try:
            self._buffer = recorder.stop()
        except CaptureError as e:
            logger.error(f"Failed to read back recording: {e}")
            self._buffer = b""
        logger.info(f"Recording finished ({len(self._buffer)} bytes)")
        return self._buffer

    def cancel(self):
        """Stop recording and discard the audio"""
        if self.recorder is None:
            return

        recorder = self._release()
        try:
            recorder.stop()
        except CaptureError as e:
            logger.debug(f"Ignoring error while discarding recording: {e}")
        self._buffer = b""
        logger.info("Recording cancelled")

    def _release(self) -> AudioRecorder:
        self.level_sampler.stop()
        self.silence_sampler.stop()
        recorder, self.recorder = self.recorder, None
        self.meter = None
        return recorder

    def _sample_level(self):
        if self.meter is None:
            return
        self.on_level(self.meter.sample())

    def _check_silence(self):
        if self.meter is None:
            return
        if self.detector.observe(self.meter.sample()) is SilenceDecision.STOP:
            logger.info("Silence detected, ending recording")
            self.on_complete(self.finish())

    def _recorder_finished(self, recorder: AudioRecorder, success: bool):
        # Reports from a recorder we already released are stale
        if recorder is not self.recorder or success:
            return
        logger.warning("Recorder stopped unexpectedly")
        self._release()
        try:
            recorder.stop()
        except CaptureError as e:
            logger.debug(f"Ignoring error while closing interrupted recorder: {e}")
        self._buffer = b""
        self.on_interrupted()
