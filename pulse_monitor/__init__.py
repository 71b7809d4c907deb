"""
Pulse Monitor — camera rPPG heart-rate estimation.

Place your fingertip over the camera lens; each frame is reduced to its
mean red-channel intensity, the samples are buffered, and the spacing of
the pulse peaks gives the heart rate in BPM.
"""

from pulse_monitor.bpm_estimator import BPMEstimator, HeartRateZone, classify_bpm
from pulse_monitor.camera import CameraFrameSource, Frame, FrameSource
from pulse_monitor.config import MonitorConfig
from pulse_monitor.errors import AcquisitionError, FrameError, PulseMonitorError
from pulse_monitor.peak_detector import PeakDetector, detect_peaks
from pulse_monitor.sample_buffer import SampleBuffer
from pulse_monitor.session import MonitorSession, SessionSnapshot, SessionState
from pulse_monitor.signal_extractor import SignalExtractor

__version__ = "0.1.0"
__author__ = "pulse_monitor"

__all__ = [
    "AcquisitionError",
    "BPMEstimator",
    "CameraFrameSource",
    "Frame",
    "FrameError",
    "FrameSource",
    "HeartRateZone",
    "MonitorConfig",
    "MonitorSession",
    "PeakDetector",
    "PulseMonitorError",
    "SampleBuffer",
    "SessionSnapshot",
    "SessionState",
    "SignalExtractor",
    "classify_bpm",
    "detect_peaks",
]
