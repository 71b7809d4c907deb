"""Exception types raised by the pulse monitor."""


class PulseMonitorError(RuntimeError):
    """Base class for all pulse monitor errors."""


class AcquisitionError(PulseMonitorError):
    """The frame source could not be opened (permission denied, busy, absent)."""


class FrameError(PulseMonitorError):
    """A frame could not be reduced to a sample (bad shape, no red channel)."""
