"""
Pulse peak detection.

A sample is a peak when it is a strict local maximum (greater than both
neighbours) and lies above the mean of the window.  Plateaus are never
flagged and the first/last samples are never peaks.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
from scipy.signal import argrelmax


def detect_peaks(samples: Sequence[float]) -> List[int]:
    """
    Return the ascending indices of the peaks in *samples*.

    Fewer than three samples (no interior point) yields an empty list.
    """
    data = np.asarray(samples, dtype=np.float64)
    if data.size < 3:
        return []

    threshold = data.mean()
    # argrelmax uses strict comparisons and, in "clip" mode, never
    # reports the endpoints.
    candidates = argrelmax(data, order=1, mode="clip")[0]
    return [int(i) for i in candidates if data[i] > threshold]


class PeakDetector:
    """Stateless wrapper around :func:`detect_peaks`."""

    def detect(self, samples: Sequence[float]) -> List[int]:
        return detect_peaks(samples)

    __call__ = detect
