"""Pointer/content coordinates ↔ timeline time and track index."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from cliparranger.utils.config import (
    BASE_PIXELS_PER_SECOND,
    DEFAULT_NUM_TRACKS,
    MIN_SEGMENT_WIDTH_PX,
    TRACK_HEIGHT,
    TRACK_MARGIN,
    ZOOM_MAX,
    ZOOM_MIN,
    ZOOM_STEP,
)


def clamp_zoom(zoom: float) -> float:
    return max(ZOOM_MIN, min(ZOOM_MAX, zoom))


@dataclass(frozen=True)
class CoordinateMapper:
    """Pure conversions between content pixels and timeline units.

    "Content" coordinates are viewport coordinates already corrected for
    horizontal scroll and for the pointer's grab offset inside the segment,
    so x addresses the segment's left edge. Out-of-range inputs are clamped
    here and never reach the model.
    """

    pixels_per_second: float = BASE_PIXELS_PER_SECOND
    track_height: float = TRACK_HEIGHT
    track_margin: float = TRACK_MARGIN
    num_tracks: int = DEFAULT_NUM_TRACKS

    def __post_init__(self) -> None:
        if self.pixels_per_second <= 0:
            raise ValueError(f"pixels_per_second must be positive, got {self.pixels_per_second}")
        if self.track_height + self.track_margin <= 0:
            raise ValueError("track_height + track_margin must be positive")
        if self.num_tracks < 1:
            raise ValueError(f"num_tracks must be >= 1, got {self.num_tracks}")

    @property
    def track_pitch(self) -> float:
        """Vertical distance between the tops of two adjacent tracks."""
        return self.track_height + self.track_margin

    @property
    def zoom(self) -> float:
        return self.pixels_per_second / BASE_PIXELS_PER_SECOND

    # -------------------------------------------------------- Horizontal

    def time_from_content_x(self, x: float) -> float:
        return max(0.0, x / self.pixels_per_second)

    def content_x_from_time(self, time_s: float) -> float:
        return time_s * self.pixels_per_second

    @staticmethod
    def scroll_corrected_x(viewport_x: float, scroll_x: float) -> float:
        return viewport_x + scroll_x

    def segment_width_px(self, duration: float) -> float:
        """Drawn width of a segment; very short segments keep a grabbable minimum."""
        return max(duration * self.pixels_per_second, MIN_SEGMENT_WIDTH_PX)

    # -------------------------------------------------------- Vertical

    def track_index_from_content_y(self, y: float) -> int:
        index = math.floor(y / self.track_pitch)
        return max(0, min(self.num_tracks - 1, index))

    def content_y_from_track_index(self, track_index: int) -> float:
        """Top edge of a track."""
        return track_index * self.track_pitch

    # -------------------------------------------------------- Zoom

    def with_zoom(self, zoom: float) -> CoordinateMapper:
        return replace(self, pixels_per_second=BASE_PIXELS_PER_SECOND * clamp_zoom(zoom))

    def zoom_in(self) -> CoordinateMapper:
        return self.with_zoom(self.zoom + ZOOM_STEP)

    def zoom_out(self) -> CoordinateMapper:
        return self.with_zoom(self.zoom - ZOOM_STEP)
