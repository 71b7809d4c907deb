"""
Frame → sample reduction.

A fingertip held over the lens is lit through by ambient light or the
flash; blood-volume changes with each heartbeat modulate how much red
light gets through, so the mean red intensity of the whole frame is the
PPG sample.
"""

from __future__ import annotations

import numpy as np

from pulse_monitor.camera import Frame
from pulse_monitor.errors import FrameError


class SignalExtractor:
    """Reduce one :class:`~pulse_monitor.camera.Frame` to its mean red intensity."""

    def extract(self, frame: Frame) -> float:
        """
        Return the mean red-channel value of *frame* (0.0 – 255.0).

        Raises
        ------
        FrameError
            If the pixel array is not ``H × W × C``, has no pixels, or the
            channel order has no ``R``.
        """
        pixels = frame.pixels
        if pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise FrameError(f"Unexpected frame shape {pixels.shape}")

        red_idx = frame.channel_order.upper().find("R")
        if red_idx < 0 or red_idx >= pixels.shape[2]:
            raise FrameError(
                f"No red channel in order {frame.channel_order!r} "
                f"for frame with {pixels.shape[2]} channels"
            )
        return float(np.mean(pixels[:, :, red_idx], dtype=np.float64))

    __call__ = extract
