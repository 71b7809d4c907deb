"""
Monitoring session.

Owns the sample buffer and BPM estimate for one monitoring UI and runs the
per-frame loop::

    poll frame ─► mean red ─► buffer ─► (every ≥ 2 s, > 60 samples)
                                          peaks ─► BPM ─► current_bpm

The loop runs on a background worker thread by default, or is driven by
the caller through :meth:`MonitorSession.step`.  A single re-entrant lock
serialises frame appends, analyses and :meth:`MonitorSession.stop`, and
every step re-checks the session state under that lock, so nothing
touches the buffer once ``stop()`` has returned.  The worker holds only a
weak reference to its session, so a session that is dropped while
monitoring is stopped by its finaliser.

Usage::

    with MonitorSession(CameraFrameSource()) as session:
        while True:
            print(session.current_bpm)
            time.sleep(1)
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Tuple

from pulse_monitor.bpm_estimator import BPMEstimator, HeartRateZone, classify_bpm
from pulse_monitor.camera import FrameSource
from pulse_monitor.config import MonitorConfig
from pulse_monitor.errors import AcquisitionError
from pulse_monitor.peak_detector import PeakDetector
from pulse_monitor.sample_buffer import SampleBuffer
from pulse_monitor.signal_extractor import SignalExtractor

logger = logging.getLogger(__name__)

_JOIN_TIMEOUT_S = 2.0


class SessionState(Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


class SessionSnapshot(NamedTuple):
    """What listeners are told whenever the state or BPM changes."""

    state: SessionState
    bpm: Optional[int]


Listener = Callable[[SessionSnapshot], None]


class MonitorSession:
    """
    Lifecycle and orchestration for one heart-rate monitor.

    Parameters
    ----------
    source:
        Frame source; opened by :meth:`start` and closed by :meth:`stop`.
    config:
        Tunables; defaults to :class:`~pulse_monitor.config.MonitorConfig`.
    clock:
        Monotonic seconds, used for the analysis interval.  Injectable for
        tests.
    """

    def __init__(
        self,
        source: FrameSource,
        config: Optional[MonitorConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.config = config or MonitorConfig()
        self._clock = clock

        self._extractor = SignalExtractor()
        self._detector = PeakDetector()
        self._estimator = BPMEstimator(
            fps=self.config.fps_assumed,
            bpm_min=self.config.bpm_min,
            bpm_max=self.config.bpm_max,
        )
        self._buffer = SampleBuffer(self.config.buffer_capacity)

        self._state = SessionState.IDLE
        self._last_analysis: Optional[float] = None
        self._last_error: Optional[BaseException] = None

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._listeners: List[Listener] = []
        self._notify_lock = threading.RLock()
        self._generation = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._state is SessionState.MONITORING

    @property
    def current_bpm(self) -> Optional[int]:
        return self._estimator.current_bpm

    @property
    def heart_rate_zone(self) -> Optional[HeartRateZone]:
        bpm = self._estimator.current_bpm
        return classify_bpm(bpm) if bpm is not None else None

    @property
    def last_error(self) -> Optional[BaseException]:
        """The fault that last forced the session to stop, if any."""
        return self._last_error

    @property
    def sample_count(self) -> int:
        return len(self._buffer)

    @property
    def buffer_fill_ratio(self) -> float:
        return self._buffer.fill_ratio

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(self._state, self._estimator.current_bpm)

    def add_listener(self, listener: Listener) -> None:
        """Call *listener* with a :class:`SessionSnapshot` on every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, background: bool = True) -> None:
        """
        Open the source and begin monitoring.

        Parameters
        ----------
        background:
            Run the frame loop on a worker thread.  With *False* the caller
            drives the loop by calling :meth:`step`.

        Raises
        ------
        AcquisitionError
            The source could not be opened.  The session stays idle.
        """
        with self._lock:
            if self._state is SessionState.MONITORING:
                return
            try:
                self.source.open()
            except AcquisitionError:
                logger.error("Could not open frame source.", exc_info=True)
                raise
            except Exception as exc:                     # noqa: BLE001
                logger.error("Could not open frame source.", exc_info=True)
                raise AcquisitionError(str(exc)) from exc

            self._reset()
            self._last_error = None
            self._state = SessionState.MONITORING
            self._generation += 1
            generation = self._generation

            if background:
                self._stop_event = threading.Event()
                # The worker only holds a weak reference so that dropping
                # the session still tears it down.
                self._worker = threading.Thread(
                    target=_worker_loop,
                    args=(
                        weakref.ref(self),
                        self._stop_event,
                        self.config.poll_interval_s,
                    ),
                    name="PulseMonitorWorker",
                    daemon=True,
                )
                self._worker.start()
            snap = SessionSnapshot(self._state, None)

        logger.info("Monitoring started (background=%s).", background)
        self._notify(snap, generation)

    def stop(self) -> None:
        """
        Stop monitoring, release the source and clear all samples and the
        estimate.  Does nothing when already idle.
        """
        # Cancel the worker before waiting on the lock so it cannot
        # re-enter step() ahead of us.
        self._stop_event.set()
        with self._lock:
            if self._state is SessionState.IDLE:
                return
            worker, snap, generation = self._stop_locked()
        self._finish_stop(worker, snap, generation)

    close = stop

    def step(self) -> bool:
        """
        Run one iteration of the frame loop.

        Returns *True* if a frame was consumed, *False* when the session is
        idle or the source had no frame ready.  Any fault stops the session,
        is stored in :attr:`last_error` and re-raised.
        """
        failure: Optional[BaseException] = None
        bpm_changed = False
        consumed = False
        with self._lock:
            if self._state is not SessionState.MONITORING:
                return False
            try:
                consumed, bpm_changed = self._process_next_frame()
            except Exception as exc:                     # noqa: BLE001
                logger.exception("Monitoring fault; stopping session.")
                self._last_error = exc
                failure = exc
                self._stop_event.set()
                stopped = self._stop_locked()
            snap = SessionSnapshot(self._state, self._estimator.current_bpm)
            generation = self._generation

        if failure is not None:
            self._finish_stop(*stopped)
            raise failure
        if bpm_changed:
            self._notify(snap, generation)
        return consumed

    # ------------------------------------------------------------------
    # Context manager / teardown
    # ------------------------------------------------------------------

    def __enter__(self) -> "MonitorSession":
        self.start()
        return self

    def __exit__(self, *_) -> None:
        self.stop()

    def __del__(self) -> None:
        if getattr(self, "_state", None) is SessionState.MONITORING:
            self.stop()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _stop_locked(
        self,
    ) -> Tuple[Optional[threading.Thread], SessionSnapshot, int]:
        """Move to IDLE and release the source.  Caller holds ``_lock``."""
        self._state = SessionState.IDLE
        self._generation += 1
        worker, self._worker = self._worker, None
        self._reset()
        try:
            self.source.close()
        except Exception as exc:                         # noqa: BLE001
            logger.warning("Error while closing frame source: %s", exc)
        return worker, SessionSnapshot(self._state, None), self._generation

    def _finish_stop(
        self,
        worker: Optional[threading.Thread],
        snap: SessionSnapshot,
        generation: int,
    ) -> None:
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=_JOIN_TIMEOUT_S)
            if worker.is_alive():
                logger.warning("Worker thread did not exit within %.1f s.",
                               _JOIN_TIMEOUT_S)
        logger.info("Monitoring stopped.")
        self._notify(snap, generation)

    def _process_next_frame(self) -> tuple[bool, bool]:
        frame = self.source.read_frame()
        if frame is None:
            logger.debug("No frame ready; skipping.")
            return False, False
        self._buffer.append(self._extractor(frame))
        return True, self._maybe_analyse()

    def _maybe_analyse(self) -> bool:
        """Run the rate-limited analysis; return *True* if the BPM changed."""
        if len(self._buffer) <= self.config.min_analysis_samples:
            return False
        now = self._clock()
        if (
            self._last_analysis is not None
            and now - self._last_analysis < self.config.analysis_interval_s
        ):
            return False
        self._last_analysis = now

        previous = self._estimator.current_bpm
        peaks = self._detector(self._buffer.snapshot())
        accepted = self._estimator.update(peaks)
        if accepted is None:
            return False
        if accepted != previous:
            logger.info("Heart rate: %d BPM (%d peaks).", accepted, len(peaks))
        return accepted != previous

    def _reset(self) -> None:
        self._buffer.clear()
        self._estimator.reset()
        self._last_analysis = None

    def _notify(self, snap: SessionSnapshot, generation: int) -> None:
        """
        Deliver *snap* unless a later start/stop has superseded it.

        Delivery is serialised by ``_notify_lock`` and the generation is
        re-checked before every listener, so a listener that stops the
        session never sees an older snapshot afterwards.
        """
        with self._notify_lock:
            for listener in list(self._listeners):
                if generation != self._generation:
                    return
                try:
                    listener(snap)
                except Exception:                        # noqa: BLE001
                    logger.exception("Session listener %r failed.", listener)


def _worker_loop(
    session_ref: "weakref.ref[MonitorSession]",
    stop_event: threading.Event,
    poll_interval_s: float,
) -> None:
    logger.debug("Worker thread started.")
    while not stop_event.is_set():
        session = session_ref()
        if session is None:
            break
        try:
            consumed = session.step()
        except Exception:                                # noqa: BLE001
            # step() has already logged the fault and stopped the session.
            break
        finally:
            del session
        if not consumed:
            stop_event.wait(poll_interval_s)
    logger.debug("Worker thread exiting.")
