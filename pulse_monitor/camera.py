"""
Frame sources.

Defines the :class:`Frame` value passed into the core and the
:class:`FrameSource` protocol the session polls, plus
:class:`CameraFrameSource`, which wraps picamera2 on a Raspberry Pi and
falls back to OpenCV ``VideoCapture`` (any webcam) elsewhere.  All frames
leave this module in RGBA channel order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable

import cv2
import numpy as np

from pulse_monitor.constants import (
    DEFAULT_CHANNEL_ORDER,
    DEFAULT_RESOLUTION,
    FPS_ASSUMED,
)
from pulse_monitor.errors import AcquisitionError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Try importing picamera2 (only available on Raspberry Pi OS)
# ---------------------------------------------------------------------------
try:
    from picamera2 import Picamera2
    from libcamera import Transform          # optional horizontal flip
    _PICAMERA2_AVAILABLE = True
except ImportError:
    _PICAMERA2_AVAILABLE = False
    logger.debug("picamera2 not found – using OpenCV VideoCapture.")


# ---------------------------------------------------------------------------
# Frame value
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Frame:
    """
    One captured image.

    Parameters
    ----------
    pixels:
        ``H × W × C`` array (``uint8`` from cameras).  Stored as a
        read-only view; the caller's array is left writable.
    channel_order:
        Channel letters in array order, e.g. ``"RGBA"`` or ``"BGR"``.
    """

    pixels: np.ndarray
    channel_order: str = DEFAULT_CHANNEL_ORDER

    def __post_init__(self) -> None:
        # Lock a view, not the caller's array.
        view = self.pixels.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])


@runtime_checkable
class FrameSource(Protocol):
    """What :class:`~pulse_monitor.session.MonitorSession` needs from a camera."""

    def open(self) -> None:
        """Acquire the device.  Raises :class:`AcquisitionError` on failure."""

    def read_frame(self) -> Optional[Frame]:
        """Return the next frame, or *None* if none is ready yet."""

    def close(self) -> None:
        """Release the device.  Safe to call when already closed."""


# ---------------------------------------------------------------------------
# Camera implementation
# ---------------------------------------------------------------------------

class CameraFrameSource:
    """
    Thin wrapper around the Raspberry Pi camera or a generic webcam.

    Parameters
    ----------
    resolution:
        (width, height) of captured frames.
    fps:
        Target frame rate.  Actual rate may differ; the estimator still
        assumes :data:`~pulse_monitor.constants.FPS_ASSUMED`.
    flip_horizontal:
        Mirror the image left-to-right (selfie-style front camera).
    camera_index:
        OpenCV camera index used when picamera2 is unavailable.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = DEFAULT_RESOLUTION,
        fps: int = FPS_ASSUMED,
        flip_horizontal: bool = False,
        camera_index: int = 0,
    ) -> None:
        self.resolution = resolution
        self.fps = fps
        self.flip_horizontal = flip_horizontal
        self.camera_index = camera_index

        self._cam: "Picamera2 | cv2.VideoCapture | None" = None
        self._use_picamera2 = _PICAMERA2_AVAILABLE

    @property
    def is_open(self) -> bool:
        return self._cam is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Initialise and start the camera."""
        if self._cam is not None:
            return
        if self._use_picamera2:
            self._open_picamera2()
        else:
            self._open_opencv()
        logger.info(
            "Camera opened – backend=%s resolution=%s fps=%d",
            "picamera2" if self._use_picamera2 else "opencv",
            self.resolution,
            self.fps,
        )

    def close(self) -> None:
        """Stop and release the camera."""
        if self._cam is None:
            return
        if self._use_picamera2:
            self._cam.stop()
            self._cam.close()
        else:
            self._cam.release()
        self._cam = None
        logger.info("Camera closed.")

    def __enter__(self) -> "CameraFrameSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def read_frame(self) -> Optional[Frame]:
        """
        Capture a single frame.

        Returns
        -------
        Frame
            RGBA frame, or *None* if the device delivered nothing this time.
        """
        if self._cam is None:
            raise RuntimeError("Camera is not open.  Call open() first.")

        if self._use_picamera2:
            pixels = self._read_picamera2()
        else:
            pixels = self._read_opencv()
        if pixels is None:
            return None
        return Frame(pixels=pixels, channel_order="RGBA")

    # ------------------------------------------------------------------
    # Private helpers – picamera2
    # ------------------------------------------------------------------

    def _open_picamera2(self) -> None:
        try:
            cam = Picamera2()
        except Exception as exc:                         # noqa: BLE001
            raise AcquisitionError(f"Cannot open Pi camera: {exc}") from exc
        w, h = self.resolution
        transform = Transform(hflip=self.flip_horizontal)
        # XBGR8888 arrives in Python as [R, G, B, 255] per pixel.
        config = cam.create_video_configuration(
            main={"size": (w, h), "format": "XBGR8888"},
            transform=transform,
            buffer_count=4,
        )
        try:
            cam.configure(config)
        except Exception as exc:                         # noqa: BLE001
            cam.close()
            raise AcquisitionError(f"Cannot configure Pi camera: {exc}") from exc
        frame_duration = int(1_000_000 / self.fps)   # microseconds
        try:
            cam.set_controls({
                "FrameDurationLimits": (frame_duration, frame_duration),
            })
        except Exception as exc:                         # noqa: BLE001
            logger.warning("Could not set FrameDurationLimits: %s", exc)
        try:
            cam.start()
        except Exception as exc:                         # noqa: BLE001
            cam.close()
            raise AcquisitionError(f"Cannot start Pi camera: {exc}") from exc
        self._cam = cam

    def _read_picamera2(self) -> np.ndarray | None:
        frame = self._cam.capture_array("main")
        if frame is None:
            logger.warning("capture_array returned None.")
            return None
        return frame

    # ------------------------------------------------------------------
    # Private helpers – OpenCV fallback
    # ------------------------------------------------------------------

    def _open_opencv(self) -> None:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise AcquisitionError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cam = cap

    def _read_opencv(self) -> np.ndarray | None:
        ok, frame = self._cam.read()
        if not ok:
            logger.debug("VideoCapture.read() returned False.")
            return None
        if self.flip_horizontal:
            frame = cv2.flip(frame, 1)
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
