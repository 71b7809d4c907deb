"""
Tests for the command-line entry point.
Run with:  pytest tests/test_main.py
"""

from __future__ import annotations

import cv2
import pytest

import main
from pulse_monitor import camera


class ClosedCapture:
    def __init__(self, index):
        self.index = index

    def isOpened(self):
        return False

    def release(self):
        pass


def test_defaults():
    args = main.parse_args([])
    assert args.resolution == "640x480"
    assert args.fps == 30
    assert args.duration == 0.0
    assert not args.no_flip


def test_invalid_resolution_exit_code():
    assert main.main(["--resolution", "wide"]) == 1


def test_camera_unavailable_exit_code(monkeypatch):
    monkeypatch.setattr(camera, "_PICAMERA2_AVAILABLE", False)
    monkeypatch.setattr(cv2, "VideoCapture", ClosedCapture)
    assert main.main(["--camera-index", "9"]) == 1


def test_rejects_unknown_log_level():
    with pytest.raises(SystemExit):
        main.parse_args(["--log-level", "LOUD"])
