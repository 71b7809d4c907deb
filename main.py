#!/usr/bin/env python3
"""
Pulse Monitor – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --resolution WxH     Camera resolution (default: 640x480)
    --fps INT            Target frame rate  (default: 30)
    --camera-index INT   OpenCV camera index (fallback, default: 0)
    --no-flip            Disable horizontal mirror
    --duration FLOAT     Stop after this many seconds (default: 0 = run until Ctrl-C)
    --log-level LEVEL    Logging verbosity (default: INFO)

Place a fingertip over the camera lens and keep it still; the first
estimate appears after a few seconds and is refreshed every two seconds.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from pulse_monitor.bpm_estimator import classify_bpm
from pulse_monitor.camera import CameraFrameSource
from pulse_monitor.errors import AcquisitionError
from pulse_monitor.session import MonitorSession

logger = logging.getLogger("pulse_monitor")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Heart-rate monitor via device camera (rPPG)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--fps", type=int, default=30,
                        help="Target capture frame rate")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index (fallback)")
    parser.add_argument("--no-flip", action="store_true",
                        help="Disable horizontal image flip")
    parser.add_argument("--duration", type=float, default=0.0,
                        help="Seconds to run; 0 runs until interrupted")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 640x480.")
        return 1

    source = CameraFrameSource(
        resolution=(res_w, res_h),
        fps=args.fps,
        flip_horizontal=not args.no_flip,
        camera_index=args.camera_index,
    )
    session = MonitorSession(source)

    try:
        session.start()
    except AcquisitionError as exc:
        logger.error("Failed to access camera: %s", exc)
        return 1

    logger.info("Camera started.  Place your finger over the camera.")
    started = time.monotonic()
    try:
        while session.is_monitoring:
            if args.duration and time.monotonic() - started >= args.duration:
                break
            ts = time.strftime("%H:%M:%S")
            bpm = session.current_bpm
            if bpm is not None:
                print(f"[{ts}] BPM={bpm}  zone={classify_bpm(bpm).value}  "
                      f"buffer={session.buffer_fill_ratio:.0%}")
            else:
                print(f"[{ts}] Waiting for signal…  buffer={session.buffer_fill_ratio:.0%}")
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        session.stop()

    if session.last_error is not None:
        logger.error("Monitoring aborted: %s", session.last_error)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
