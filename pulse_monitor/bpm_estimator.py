"""
Peak spacing → heart rate.

Algorithm
---------
1. Average the spacing (in samples) of consecutive peaks:
   ``(peaks[-1] - peaks[0]) / (len(peaks) - 1)``.
2. Convert to beats per minute at the nominal analysis rate:
   ``60 / (interval / fps)``, rounded to the nearest integer.
3. Keep the result only when it lies inside the physiological band
   (40 – 200 BPM by default).  Anything else is flicker, motion or poor
   finger coverage and is dropped without touching the current estimate.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional, Sequence

from pulse_monitor.constants import (
    BPM_MAX,
    BPM_MIN,
    FPS_ASSUMED,
    ZONE_NORMAL_HIGH,
    ZONE_NORMAL_LOW,
)

logger = logging.getLogger(__name__)


class HeartRateZone(Enum):
    BELOW_NORMAL = "below_normal"
    NORMAL = "normal"
    ELEVATED = "elevated"


def classify_bpm(bpm: int) -> HeartRateZone:
    """Resting heart-rate zone: < 60 below normal, 60 – 100 normal, > 100 elevated."""
    if bpm < ZONE_NORMAL_LOW:
        return HeartRateZone.BELOW_NORMAL
    if bpm <= ZONE_NORMAL_HIGH:
        return HeartRateZone.NORMAL
    return HeartRateZone.ELEVATED


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class BPMEstimator:
    """
    Holds the current BPM estimate and updates it from peak lists.

    Parameters
    ----------
    fps:
        Nominal samples per second.  Defaults to ``FPS_ASSUMED``, which is a
        fixed assumption rather than the measured camera rate.
    bpm_min, bpm_max:
        Inclusive bounds for accepting an estimate.
    """

    def __init__(
        self,
        fps: float = FPS_ASSUMED,
        bpm_min: int = BPM_MIN,
        bpm_max: int = BPM_MAX,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.fps = fps
        self.bpm_min = bpm_min
        self.bpm_max = bpm_max
        self._current: Optional[int] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_bpm(self) -> Optional[int]:
        return self._current

    def raw_bpm(self, peaks: Sequence[int]) -> Optional[int]:
        """
        Convert *peaks* to an unvalidated BPM, or *None* with fewer than
        two peaks.
        """
        if len(peaks) < 2:
            return None
        avg_interval = (peaks[-1] - peaks[0]) / (len(peaks) - 1)
        if avg_interval <= 0:
            return None
        return _round_half_up(60.0 / (avg_interval / self.fps))

    def is_plausible(self, bpm: int) -> bool:
        return self.bpm_min <= bpm <= self.bpm_max

    def update(self, peaks: Sequence[int]) -> Optional[int]:
        """
        Fold one analysis tick into the estimate.

        Returns the newly accepted BPM, or *None* when the tick was
        inconclusive or out of range (the previous estimate is kept).
        """
        bpm = self.raw_bpm(peaks)
        if bpm is None:
            logger.debug("Not enough peaks (%d) for an estimate.", len(peaks))
            return None
        if not self.is_plausible(bpm):
            logger.debug(
                "Discarding %d BPM (outside %d – %d).",
                bpm, self.bpm_min, self.bpm_max,
            )
            return None
        self._current = bpm
        return bpm

    def reset(self) -> None:
        """Forget the current estimate."""
        self._current = None
