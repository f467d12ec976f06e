# audible_assistant/playback.py
"""
Speaker ownership for a single spoken reply
"""

import asyncio
import logging
from typing import Callable, Optional

from .audio import AudioPlayer, SignalMeter
from .config import Config
from .errors import PlaybackError
from .utils import PeriodicSampler

logger = logging.getLogger(__name__)


class PlaybackSession:
    """Plays one reply, publishing its signal level until it ends or is cancelled"""

    def __init__(
        self,
        player_factory: Callable[[], AudioPlayer],
        config: Config,
        on_level: Callable[[float], None],
        on_complete: Callable[[bool], None],
    ):
        self.player_factory = player_factory
        # Output power sits in a wider range than the microphone's
        self.divisor = config.playback_power_divisor
        self.on_level = on_level
        self.on_complete = on_complete
        self.level_sampler = PeriodicSampler(config.meter_interval, self._sample_level, "playback-meter")

        self.player: Optional[AudioPlayer] = None
        self.meter: Optional[SignalMeter] = None

    @property
    def active(self) -> bool:
        return self.player is not None

    def play(self, audio: bytes):
        """Start playback; raises PlaybackError if the speaker cannot be used"""
        if self.player is not None:
            raise RuntimeError("Playback session already started")

        loop = asyncio.get_running_loop()
        player = self.player_factory()
        player.on_finished = lambda success: loop.call_soon_threadsafe(
            self._player_finished, player, success
        )
        player.start(audio)

        self.player = player
        self.meter = SignalMeter(player, self.divisor)
        self.level_sampler.start()

    def cancel(self):
        """Stop playback; the completion callback will not fire"""
        if self.player is None:
            return
        self._release()
        logger.info("Playback cancelled")

    def _release(self):
        self.level_sampler.stop()
        player, self.player = self.player, None
        self.meter = None
        try:
            player.stop()
        except PlaybackError as e:
            logger.warning(f"Ignoring error while releasing the speaker: {e}")

    def _sample_level(self):
        if self.meter is None:
            return
        self.on_level(self.meter.sample())

    def _player_finished(self, player: AudioPlayer, success: bool):
        if player is not self.player:
            return
        self._release()
        logger.info(f"Playback finished ({'complete' if success else 'interrupted'})")
        self.on_complete(success)
