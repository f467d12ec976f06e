# audible_assistant/silence.py
"""
End-of-speech heuristic fed by the decision-rate sampler
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SilenceDecision(Enum):
    CONTINUE = "continue"
    STOP = "stop"


class SilenceDetector:
    """Two-sample hysteresis over signal levels.

    The first sample only primes the detector. After that, recording stops when
    the previous sample was below ``previous_threshold`` and the current one is
    below ``current_threshold``; a single quiet reading never ends the turn.
    """

    def __init__(self, previous_threshold: float = 0.25, current_threshold: float = 0.175):
        self.previous_threshold = previous_threshold
        self.current_threshold = current_threshold
        self.previous_level: Optional[float] = None

    def reset(self):
        self.previous_level = None

    def observe(self, level: float) -> SilenceDecision:
        if self.previous_level is None:
            self.previous_level = level
            return SilenceDecision.CONTINUE

        if self.previous_level < self.previous_threshold and level < self.current_threshold:
            logger.debug(f"Silence detected (previous {self.previous_level:.3f}, current {level:.3f})")
            return SilenceDecision.STOP

        self.previous_level = level
        return SilenceDecision.CONTINUE
