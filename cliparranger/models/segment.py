"""Timeline segment model (pure Python, no Qt dependency)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from cliparranger.utils.config import TIME_TOLERANCE_S


def new_segment_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class Segment:
    """A trimmed window of a source placed on one track of the timeline.

    *source_start* / *source_end* select the window within the source,
    *track_position* is the offset of the segment's left edge from the
    timeline origin. All times are seconds.

    Overlay segments (e.g. an audio bed riding over a video segment) are
    exempt from the no-overlap rule on their track.
    """

    source_id: str
    source_start: float
    source_end: float
    track_index: int = 0
    track_position: float = 0.0
    is_overlay: bool = False
    segment_id: str = field(default_factory=new_segment_id)

    @property
    def duration(self) -> float:
        return self.source_end - self.source_start

    @property
    def track_end(self) -> float:
        """Timeline position just past the segment's last instant."""
        return self.track_position + self.duration

    def contains_time(self, time_s: float) -> bool:
        """True if *time_s* falls inside [track_position, track_end)."""
        return self.track_position - TIME_TOLERANCE_S <= time_s < self.track_end - TIME_TOLERANCE_S

    def overlaps(self, other: Segment) -> bool:
        """True if both segments sit on one track and their intervals intersect."""
        if self.track_index != other.track_index:
            return False
        return (self.track_position < other.track_end - TIME_TOLERANCE_S
                and other.track_position < self.track_end - TIME_TOLERANCE_S)

    def clone(self) -> Segment:
        """Copy keeping the same id (a provisional or snapshot copy)."""
        return Segment(
            source_id=self.source_id,
            source_start=self.source_start,
            source_end=self.source_end,
            track_index=self.track_index,
            track_position=self.track_position,
            is_overlay=self.is_overlay,
            segment_id=self.segment_id,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "segment_id": self.segment_id,
            "source_id": self.source_id,
            "source_start": self.source_start,
            "source_end": self.source_end,
            "track_index": self.track_index,
            "track_position": self.track_position,
        }
        if self.is_overlay:
            d["is_overlay"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Segment:
        kwargs = {}
        if "segment_id" in data:
            kwargs["segment_id"] = data["segment_id"]
        return cls(
            source_id=data["source_id"],
            source_start=float(data["source_start"]),
            source_end=float(data["source_end"]),
            track_index=int(data.get("track_index", 0)),
            track_position=float(data.get("track_position", 0.0)),
            is_overlay=data.get("is_overlay", False),
            **kwargs,
        )
