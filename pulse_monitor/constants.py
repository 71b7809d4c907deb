"""
Fixed parameters of the pulse estimator.

``FPS_ASSUMED`` is the nominal analysis rate used to turn a peak spacing
(in samples) into beats per minute.  It is *not* measured from the camera:
if frames actually arrive at a different rate the BPM is biased by the
ratio of the two rates.
"""

# Sample buffer
N_MAX = 256                    # samples kept for analysis (~8.5 s at 30 fps)

# BPM conversion / validation
FPS_ASSUMED = 30               # frames analysed per second
BPM_MIN = 40
BPM_MAX = 200

# Analysis gate
MIN_ANALYSIS_SAMPLES = 60      # buffer must hold *more* than this many samples
ANALYSIS_INTERVAL_S = 2.0      # minimum seconds between two analyses

# Frame loop
POLL_INTERVAL_S = 1.0 / FPS_ASSUMED

# Camera defaults
DEFAULT_RESOLUTION = (640, 480)
DEFAULT_CHANNEL_ORDER = "RGBA"

# Heart-rate zone boundaries (BPM)
ZONE_NORMAL_LOW = 60
ZONE_NORMAL_HIGH = 100
