# audible_assistant/audio.py
"""
Audio hardware access: signal metering, recorder and player backends
"""

import io
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional
import numpy as np
import soundfile as sf

from .config import CaptureSettings
from .errors import CaptureError, PlaybackError

logger = logging.getLogger(__name__)

# Lowest power a meter reports, in dBFS
SILENCE_FLOOR_DB = -160.0

FinishedCallback = Callable[[bool], None]


def _sounddevice(error_type=CaptureError):
    # PortAudio is loaded on first use so the package imports on machines without audio devices
    try:
        import sounddevice
    except OSError as e:
        raise error_type(f"PortAudio is not available: {e}") from e
    return sounddevice


def normalize_power(decibels: float, divisor: float) -> float:
    """Map average power in dBFS onto [0, 1]"""
    return min(1.0, max(0.0, 1.0 - abs(decibels) / divisor))


def block_power_db(block: Optional[np.ndarray]) -> float:
    """RMS power of an audio block in dBFS"""
    if block is None or block.size == 0:
        return SILENCE_FLOOR_DB
    samples = block.astype(np.float64)
    if block.dtype == np.int16:
        samples /= 32768.0
    rms = float(np.sqrt(np.mean(samples ** 2)))
    if rms <= 0.0:
        return SILENCE_FLOOR_DB
    return max(SILENCE_FLOOR_DB, 20.0 * float(np.log10(rms)))


class MeteredSource(ABC):
    """Anything whose loudness can be sampled"""

    @abstractmethod
    def update_meters(self) -> None:
        """Refresh the power reading"""

    @abstractmethod
    def average_power(self) -> float:
        """Last refreshed average power in dBFS (0 is loudest)"""


class AudioRecorder(MeteredSource):
    """Microphone capture for a single recording"""

    on_finished: Optional[FinishedCallback] = None

    @abstractmethod
    def start(self, settings: CaptureSettings) -> None:
        """Begin capturing; raises CaptureError if the device cannot be acquired"""

    @abstractmethod
    def stop(self) -> bytes:
        """Stop capturing and return the encoded recording"""


class AudioPlayer(MeteredSource):
    """Speaker output for a single reply"""

    on_finished: Optional[FinishedCallback] = None

    @abstractmethod
    def start(self, audio: bytes) -> None:
        """Begin playback; raises PlaybackError if the audio cannot be played"""

    @abstractmethod
    def stop(self) -> None:
        """Stop playback without reporting completion"""


class SignalMeter:
    """Normalized [0, 1] loudness samples from a recorder or player"""

    def __init__(self, source: MeteredSource, divisor: float):
        self.source = source
        self.divisor = divisor

    def sample(self) -> float:
        self.source.update_meters()
        return normalize_power(self.source.average_power(), self.divisor)


class SoundDeviceRecorder(AudioRecorder):
    """Records from the default input device into the transient capture file"""

    def __init__(self):
        self.on_finished = None
        self.settings: Optional[CaptureSettings] = None
        self.stream = None
        self._frames = []
        self._lock = threading.Lock()
        self._power = SILENCE_FLOOR_DB
        self._stopping = False

    def start(self, settings: CaptureSettings) -> None:
        self.settings = settings
        sd = _sounddevice()
        self._stopping = False
        try:
            settings.path.parent.mkdir(parents=True, exist_ok=True)
            self.stream = sd.InputStream(
                samplerate=settings.sample_rate,
                channels=settings.channels,
                dtype="int16",
                callback=self._audio_callback,
                finished_callback=self._stream_finished,
            )
            self.stream.start()
        except (sd.PortAudioError, OSError, ValueError) as e:
            self.stream = None
            raise CaptureError(f"Could not start recording: {e}") from e
        logger.info(f"Recording at {settings.sample_rate}Hz to {settings.path}")

    def _audio_callback(self, indata, frames, time_info, status):
        """Audio stream callback"""
        if status:
            logger.warning(f"Audio input status: {status}")
        with self._lock:
            self._frames.append(indata.copy())

    def _stream_finished(self):
        if self.on_finished is not None:
            self.on_finished(self._stopping)

    def update_meters(self) -> None:
        with self._lock:
            block = self._frames[-1] if self._frames else None
        self._power = block_power_db(block)

    def average_power(self) -> float:
        return self._power

    def stop(self) -> bytes:
        if self.stream is None:
            return b""
        self._stopping = True
        stream, self.stream = self.stream, None
        sd = _sounddevice()
        try:
            stream.stop()
            stream.close()
        except (sd.PortAudioError, OSError) as e:
            with self._lock:
                self._frames = []
            raise CaptureError(f"Could not stop recording: {e}") from e

        with self._lock:
            frames, self._frames = self._frames, []
        if not frames:
            return b""

        settings = self.settings
        try:
            sf.write(
                str(settings.path),
                np.concatenate(frames),
                settings.sample_rate,
                format=settings.format,
                subtype=settings.subtype,
            )
            return settings.path.read_bytes()
        except (RuntimeError, OSError) as e:
            raise CaptureError(f"Could not save recording: {e}") from e


class SoundDevicePlayer(AudioPlayer):
    """Plays an encoded reply through the default output device"""

    def __init__(self):
        self.on_finished = None
        self.stream = None
        self._data: Optional[np.ndarray] = None
        self._position = 0
        self._block: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        self._power = SILENCE_FLOOR_DB
        self._stopping = False

    def start(self, audio: bytes) -> None:
        try:
            data, sample_rate = sf.read(io.BytesIO(audio), dtype="float32", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:
            raise PlaybackError(f"Could not decode reply audio: {e}") from e

        self._data = data
        self._position = 0
        self._stopping = False
        sd = _sounddevice(PlaybackError)
        try:
            self.stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=data.shape[1],
                dtype="float32",
                callback=self._audio_callback,
                finished_callback=self._stream_finished,
            )
            self.stream.start()
        except (sd.PortAudioError, OSError, ValueError) as e:
            self.stream = None
            raise PlaybackError(f"Could not start playback: {e}") from e
        logger.info(f"Playing {len(data) / sample_rate:.1f}s of audio")

    def _audio_callback(self, outdata, frames, time_info, status):
        if status:
            logger.warning(f"Audio output status: {status}")
        chunk = self._data[self._position:self._position + frames]
        self._position += len(chunk)
        outdata[:len(chunk)] = chunk
        with self._lock:
            self._block = chunk
        if len(chunk) < frames:
            outdata[len(chunk):] = 0
            raise _sounddevice().CallbackStop

    def _stream_finished(self):
        # A stopped player never reports completion
        if self._stopping or self.on_finished is None:
            return
        self.on_finished(self._position >= len(self._data))

    def update_meters(self) -> None:
        with self._lock:
            block = self._block
        self._power = block_power_db(block)

    def average_power(self) -> float:
        return self._power

    def stop(self) -> None:
        if self.stream is None:
            return
        self._stopping = True
        stream, self.stream = self.stream, None
        sd = _sounddevice(PlaybackError)
        try:
            stream.stop()
            stream.close()
        except (sd.PortAudioError, OSError) as e:
            raise PlaybackError(f"Could not stop playback: {e}") from e


def check_input_device() -> str:
    """Make sure a default input device exists; returns its name"""
    sd = _sounddevice()
    try:
        devices = sd.query_devices()
        for i, device in enumerate(devices):
            logger.debug(f"  {i}: {device['name']} - In:{device['max_input_channels']} Out:{device['max_output_channels']}")
        device = sd.query_devices(kind="input")
    except (sd.PortAudioError, ValueError) as e:
        raise CaptureError(f"Recording not allowed: no usable input device ({e})") from e
    logger.info(f"Using input device: {device['name']}")
    return device["name"]
