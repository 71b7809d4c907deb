"""Bounded FIFO of brightness samples."""

from __future__ import annotations

from collections import deque
from typing import Deque, Tuple

from pulse_monitor.constants import N_MAX


class SampleBuffer:
    """
    Time-ordered ring of the most recent samples.

    Appending past ``capacity`` evicts from the head, so the buffer always
    holds the newest ``capacity`` samples in arrival order.
    """

    def __init__(self, capacity: int = N_MAX) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._samples: Deque[float] = deque(maxlen=capacity)

    def append(self, sample: float) -> None:
        self._samples.append(float(sample))

    def snapshot(self) -> Tuple[float, ...]:
        """Return an immutable ordered copy of the current contents."""
        return tuple(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def fill_ratio(self) -> float:
        """How full the buffer is (0 – 1)."""
        return len(self._samples) / self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)
