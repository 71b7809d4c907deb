"""
Tunable settings for a :class:`~pulse_monitor.session.MonitorSession`.

Defaults come from :mod:`pulse_monitor.constants`; override individual
fields when constructing, e.g. ``MonitorConfig(analysis_interval_s=1.0)``.
"""

from __future__ import annotations

from dataclasses import dataclass

from pulse_monitor import constants


@dataclass(frozen=True)
class MonitorConfig:
    """
    Parameters
    ----------
    buffer_capacity:
        Maximum number of samples retained (oldest evicted first).
    fps_assumed:
        Nominal samples-per-second used for the BPM conversion.
    bpm_min, bpm_max:
        Inclusive physiological bounds; estimates outside are discarded.
    min_analysis_samples:
        The buffer must hold strictly more samples than this before an
        analysis runs.
    analysis_interval_s:
        Minimum seconds between two analyses.
    poll_interval_s:
        Seconds the background worker waits after a poll that found no
        frame ready.
    """

    buffer_capacity: int = constants.N_MAX
    fps_assumed: float = constants.FPS_ASSUMED
    bpm_min: int = constants.BPM_MIN
    bpm_max: int = constants.BPM_MAX
    min_analysis_samples: int = constants.MIN_ANALYSIS_SAMPLES
    analysis_interval_s: float = constants.ANALYSIS_INTERVAL_S
    poll_interval_s: float = constants.POLL_INTERVAL_S

    def __post_init__(self) -> None:
        if self.buffer_capacity < 1:
            raise ValueError("buffer_capacity must be at least 1")
        if self.fps_assumed <= 0:
            raise ValueError("fps_assumed must be positive")
        if not 0 < self.bpm_min <= self.bpm_max:
            raise ValueError(
                f"invalid BPM range [{self.bpm_min}, {self.bpm_max}]"
            )
        if self.min_analysis_samples < 0:
            raise ValueError("min_analysis_samples must be non-negative")
        if self.analysis_interval_s < 0 or self.poll_interval_s < 0:
            raise ValueError("intervals must be non-negative")
