"""Application configuration constants."""

from __future__ import annotations

APP_VERSION = "0.2.0"

# Segment geometry (seconds)
MIN_SEGMENT_DURATION_S = 0.1  # Thinnest segment any engine operation may create
TIME_TOLERANCE_S = 1e-6       # Slack for float comparisons of timeline positions

# Tracks
DEFAULT_NUM_TRACKS = 3
TRACK_HEIGHT = 60   # px
TRACK_MARGIN = 8    # px between tracks

# Zoom: pixels_per_second = BASE_PIXELS_PER_SECOND * zoom
BASE_PIXELS_PER_SECOND = 50.0
ZOOM_MIN = 0.5
ZOOM_MAX = 3.0
ZOOM_STEP = 0.25

# Segments narrower than this are still drawn (and hit-tested) at this width
MIN_SEGMENT_WIDTH_PX = 40

# Magnetic snap distance for drag positions
SNAP_THRESHOLD_PX = 10
