"""
Unit tests for CameraFrameSource (OpenCV and picamera2 backends, both faked).
Run with:  pytest tests/test_camera.py
"""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from pulse_monitor import camera
from pulse_monitor.camera import CameraFrameSource, Frame, FrameSource
from pulse_monitor.errors import AcquisitionError
from pulse_monitor.session import MonitorSession, SessionState


class FakeCapture:
    """Stand-in for ``cv2.VideoCapture`` returning solid BGR frames."""

    instances: list["FakeCapture"] = []

    def __init__(self, index, opened=True, frames=None):
        self.index = index
        self.opened = opened
        self.frames = list(frames or [])
        self.props = {}
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self):
        self.released = True


def _bgr(b, g, r, shape=(48, 64)) -> np.ndarray:
    frame = np.zeros((*shape, 3), dtype=np.uint8)
    frame[:, :, 0] = b
    frame[:, :, 1] = g
    frame[:, :, 2] = r
    return frame


@pytest.fixture
def fake_cv2(monkeypatch):
    FakeCapture.instances = []
    monkeypatch.setattr(camera, "_PICAMERA2_AVAILABLE", False)

    def install(opened=True, frames=None):
        monkeypatch.setattr(
            cv2, "VideoCapture",
            lambda index: FakeCapture(index, opened=opened, frames=frames),
        )
    return install


class TestCameraFrameSource:

    def test_satisfies_protocol(self):
        assert isinstance(CameraFrameSource(), FrameSource)

    def test_open_failure_raises_acquisition_error(self, fake_cv2):
        fake_cv2(opened=False)
        cam = CameraFrameSource(camera_index=3)
        with pytest.raises(AcquisitionError):
            cam.open()
        assert not cam.is_open
        assert FakeCapture.instances[0].released

    def test_open_configures_capture(self, fake_cv2):
        fake_cv2()
        cam = CameraFrameSource(resolution=(320, 240), fps=15)
        cam.open()
        props = FakeCapture.instances[0].props
        assert props[cv2.CAP_PROP_FRAME_WIDTH] == 320
        assert props[cv2.CAP_PROP_FRAME_HEIGHT] == 240
        assert props[cv2.CAP_PROP_FPS] == 15
        cam.close()
        assert FakeCapture.instances[0].released

    def test_frames_are_rgba(self, fake_cv2):
        fake_cv2(frames=[_bgr(10, 20, 200)])
        with CameraFrameSource() as cam:
            frame = cam.read_frame()
        assert isinstance(frame, Frame)
        assert frame.channel_order == "RGBA"
        assert frame.pixels.shape == (48, 64, 4)
        assert frame.pixels[0, 0, 0] == 200
        assert frame.pixels[0, 0, 2] == 10

    def test_no_frame_returns_none(self, fake_cv2):
        fake_cv2(frames=[])
        with CameraFrameSource() as cam:
            assert cam.read_frame() is None

    def test_read_before_open(self):
        with pytest.raises(RuntimeError):
            CameraFrameSource().read_frame()

    def test_close_twice(self, fake_cv2):
        fake_cv2()
        cam = CameraFrameSource()
        cam.open()
        cam.close()
        cam.close()
        assert not cam.is_open

    def test_session_with_camera(self, fake_cv2):
        fake_cv2(frames=[_bgr(0, 0, 120), _bgr(0, 0, 130)])
        cam = CameraFrameSource()
        session = MonitorSession(cam)
        session.start(background=False)
        assert session.step() is True
        assert session.step() is True
        assert session.step() is False
        assert session.sample_count == 2
        session.stop()
        assert session.state is SessionState.IDLE
        assert not cam.is_open

    def test_session_start_fails_without_camera(self, fake_cv2):
        fake_cv2(opened=False)
        session = MonitorSession(CameraFrameSource())
        with pytest.raises(AcquisitionError):
            session.start(background=False)
        assert session.state is SessionState.IDLE


class FakePicamera2:
    """Stand-in for ``picamera2.Picamera2`` whose ``start`` can fail."""

    instances: list["FakePicamera2"] = []
    fail_start = False

    def __init__(self):
        self.closed = False
        FakePicamera2.instances.append(self)

    def create_video_configuration(self, **kwargs):
        return kwargs

    def configure(self, config):
        self.config = config

    def set_controls(self, controls):
        self.controls = controls

    def start(self):
        if FakePicamera2.fail_start:
            raise RuntimeError("sensor timeout")

    def stop(self):
        pass

    def close(self):
        self.closed = True


@pytest.fixture
def fake_picamera2(monkeypatch):
    FakePicamera2.instances = []
    FakePicamera2.fail_start = False
    monkeypatch.setattr(camera, "_PICAMERA2_AVAILABLE", True)
    monkeypatch.setattr(camera, "Picamera2", FakePicamera2, raising=False)
    monkeypatch.setattr(camera, "Transform", lambda hflip: {"hflip": hflip},
                        raising=False)
    return FakePicamera2


class TestPicamera2Backend:

    def test_open_and_close(self, fake_picamera2):
        cam = CameraFrameSource()
        cam.open()
        assert cam.is_open
        assert fake_picamera2.instances[0].config["main"]["format"] == "XBGR8888"
        cam.close()
        assert fake_picamera2.instances[0].closed

    def test_start_failure_releases_camera(self, fake_picamera2):
        fake_picamera2.fail_start = True
        cam = CameraFrameSource()
        with pytest.raises(AcquisitionError):
            cam.open()
        assert not cam.is_open
        assert fake_picamera2.instances[0].closed
