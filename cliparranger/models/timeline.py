"""Timeline aggregate: the committed multi-track segment set."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from cliparranger.models.errors import InvariantViolation, SessionActiveError
from cliparranger.models.segment import Segment
from cliparranger.utils.config import (
    DEFAULT_NUM_TRACKS,
    MIN_SEGMENT_DURATION_S,
    TIME_TOLERANCE_S,
)

if TYPE_CHECKING:
    from cliparranger.models.source import SourceCatalog

logger = logging.getLogger(__name__)


def _placement_key(seg: Segment) -> tuple[int, float]:
    return (seg.track_index, seg.track_position)


class Timeline:
    """Owns every Segment on a fixed number of parallel tracks.

    The committed set is only ever replaced as a whole through
    :meth:`replace_segments`, which checks every invariant before writing
    anything. The timeline stores its own copies: segments passed in are
    copied, and every query hands out copies, so editing a returned segment
    never reaches the committed set. A segment keeps its id across moves,
    so selections held by id stay valid.

    While a drag session holds the timeline (see :meth:`claim`), commits
    from anyone other than that session are refused.
    """

    def __init__(self, catalog: SourceCatalog, num_tracks: int = DEFAULT_NUM_TRACKS,
                 segments: Iterable[Segment] | None = None,
                 min_duration: float = MIN_SEGMENT_DURATION_S) -> None:
        if num_tracks < 1:
            raise ValueError(f"Timeline needs at least one track, got {num_tracks}")
        self._catalog = catalog
        self._num_tracks = num_tracks
        self._min_duration = min_duration
        self._segments: list[Segment] = []
        self._revision = 0
        self._active_session: object | None = None
        if segments:
            self.replace_segments(list(segments))

    # -------------------------------------------------------- Properties

    @property
    def catalog(self) -> SourceCatalog:
        return self._catalog

    @property
    def num_tracks(self) -> int:
        return self._num_tracks

    @property
    def min_duration(self) -> float:
        return self._min_duration

    @property
    def revision(self) -> int:
        """Incremented on every successful commit."""
        return self._revision

    @property
    def segments(self) -> tuple[Segment, ...]:
        """Committed segments ordered by track, then position."""
        return tuple(s.clone() for s in self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self):
        return iter(self.segments)

    # -------------------------------------------------------- Queries

    def get_segment(self, segment_id: str) -> Segment | None:
        for seg in self._segments:
            if seg.segment_id == segment_id:
                return seg.clone()
        return None

    def segments_on_track(self, track_index: int) -> list[Segment]:
        """Segments on *track_index* ordered by track_position."""
        return [s.clone() for s in self._segments if s.track_index == track_index]

    def total_duration(self) -> float:
        """Furthest segment end over all tracks (0 when empty)."""
        return max((s.track_end for s in self._segments), default=0.0)

    def segment_at(self, track_index: int, time_s: float) -> Segment | None:
        """Return the segment whose interval contains *time_s*, or None.

        Non-overlay segments win over overlays covering the same instant.
        """
        overlay_hit = None
        for seg in self._segments:
            if seg.track_index != track_index or not seg.contains_time(time_s):
                continue
            if not seg.is_overlay:
                return seg.clone()
            if overlay_hit is None:
                overlay_hit = seg
        return overlay_hit.clone() if overlay_hit else None

    def find_collision(self, track_index: int, time_s: float,
                       interval_end: float | None = None,
                       exclude_id: str | None = None) -> Segment | None:
        """Find the committed non-overlay segment a drop at *time_s* lands on.

        The segment containing *time_s* is preferred. When *interval_end* is
        given and no segment contains the drop time, the first segment
        overlapped by ``[time_s, interval_end)`` is returned instead.
        """
        candidates = [
            s for s in self._segments
            if s.track_index == track_index and not s.is_overlay and s.segment_id != exclude_id
        ]
        for seg in candidates:
            if seg.contains_time(time_s):
                return seg.clone()
        if interval_end is None:
            return None
        for seg in candidates:
            if seg.track_position < interval_end - TIME_TOLERANCE_S and time_s < seg.track_end - TIME_TOLERANCE_S:
                return seg.clone()
        return None

    def track_content_end(self, track_index: int) -> float:
        """End of the last non-overlay segment on a track (0 when empty)."""
        return max(
            (s.track_end for s in self._segments if s.track_index == track_index and not s.is_overlay),
            default=0.0,
        )

    def export_plan(self) -> list[dict]:
        """Committed segments as the records the export stage consumes."""
        return [
            {
                "source_id": s.source_id,
                "source_start": s.source_start,
                "source_end": s.source_end,
                "track_index": s.track_index,
                "track_position": s.track_position,
            }
            for s in self._segments
        ]

    # -------------------------------------------------------- Validation

    def validate(self, segments: Iterable[Segment]) -> list[str]:
        """Return a description of every invariant *segments* would break."""
        problems: list[str] = []
        seen_ids: set[str] = set()
        per_track: dict[int, list[Segment]] = {}

        for seg in segments:
            sid = seg.segment_id
            if sid in seen_ids:
                problems.append(f"{sid}: duplicate segment id")
            seen_ids.add(sid)

            source = self._catalog.get_source(seg.source_id)
            if source is None:
                problems.append(f"{sid}: unknown source {seg.source_id!r}")
            elif seg.source_start < -TIME_TOLERANCE_S or seg.source_end > source.duration + TIME_TOLERANCE_S:
                problems.append(
                    f"{sid}: window [{seg.source_start:.3f}, {seg.source_end:.3f}) "
                    f"outside source duration {source.duration:.3f}"
                )
            if seg.source_start >= seg.source_end:
                problems.append(f"{sid}: source_start {seg.source_start:.3f} >= source_end {seg.source_end:.3f}")
            elif seg.duration <= self._min_duration + TIME_TOLERANCE_S:
                problems.append(f"{sid}: duration {seg.duration:.3f}s not above minimum {self._min_duration}s")

            if seg.track_position < -TIME_TOLERANCE_S:
                problems.append(f"{sid}: negative track_position {seg.track_position:.3f}")
            if not 0 <= seg.track_index < self._num_tracks:
                problems.append(f"{sid}: track_index {seg.track_index} outside [0, {self._num_tracks})")

            if not seg.is_overlay:
                per_track.setdefault(seg.track_index, []).append(seg)

        for track_index, track_segs in per_track.items():
            track_segs.sort(key=lambda s: s.track_position)
            for prev, nxt in zip(track_segs, track_segs[1:]):
                if prev.track_end > nxt.track_position + TIME_TOLERANCE_S:
                    problems.append(
                        f"track {track_index}: {prev.segment_id} [{prev.track_position:.3f}, {prev.track_end:.3f}) "
                        f"overlaps {nxt.segment_id} at {nxt.track_position:.3f}"
                    )
        return problems

    def check(self, segments: Iterable[Segment]) -> None:
        """Raise InvariantViolation if *segments* break any invariant."""
        problems = self.validate(segments)
        if problems:
            raise InvariantViolation(problems)

    # -------------------------------------------------------- Commit

    def replace_segments(self, segments: Iterable[Segment], owner: object | None = None) -> None:
        """Atomically replace the committed segment set.

        Raises:
            SessionActiveError: A drag session other than *owner* holds the timeline.
            InvariantViolation: *segments* break an invariant; nothing is written.
        """
        if self._active_session is not None and owner is not self._active_session:
            raise SessionActiveError("A drag session is in progress; the timeline is locked")

        candidate = [s.clone() for s in segments]
        self.check(candidate)
        candidate.sort(key=_placement_key)
        self._segments = candidate
        self._revision += 1

    def snapshot(self) -> list[Segment]:
        """Independent copies of the committed set."""
        return [s.clone() for s in self._segments]

    def restore(self, snapshot: Iterable[Segment]) -> None:
        """Replace the committed set with a previously taken snapshot."""
        self.replace_segments(snapshot)

    # -------------------------------------------------------- Lifecycle

    def build_source_segment(self, source_id: str, track_index: int = 0,
                             track_position: float | None = None,
                             is_overlay: bool = False) -> Segment:
        """New segment covering a whole source, not yet committed.

        Raises:
            KeyError: *source_id* is not in the catalog.
        """
        source = self._catalog.get_source(source_id)
        if source is None:
            raise KeyError(f"Unknown source: {source_id}")
        if track_position is None:
            track_position = self.track_content_end(track_index)
        return Segment(
            source_id=source_id,
            source_start=0.0,
            source_end=source.duration,
            track_index=track_index,
            track_position=track_position,
            is_overlay=is_overlay,
        )

    def import_source(self, source_id: str, track_index: int = 0,
                      track_position: float | None = None,
                      is_overlay: bool = False) -> Segment:
        """Place a whole source as one new segment.

        Without *track_position* the segment is appended after the last
        non-overlay segment of the track.

        Raises:
            KeyError: *source_id* is not in the catalog.
        """
        segment = self.build_source_segment(source_id, track_index, track_position, is_overlay)
        self.replace_segments(self.snapshot() + [segment])
        source = self._catalog.get_source(source_id)
        logger.info(
            f"Imported {source.name or source_id} as {segment.segment_id} "
            f"on track {track_index} at {segment.track_position:.3f}s"
        )
        return segment

    def remove_segment(self, segment_id: str) -> Segment | None:
        """Remove a segment. Returns the removed segment or None."""
        removed = self.get_segment(segment_id)
        if removed is None:
            return None
        self.replace_segments([s for s in self.snapshot() if s.segment_id != segment_id])
        logger.info(f"Removed segment {segment_id}")
        return removed

    # -------------------------------------------------------- Session lock

    @property
    def active_session(self) -> object | None:
        return self._active_session

    def claim(self, session: object) -> None:
        """Give *session* exclusive mutation rights until :meth:`release`."""
        if self._active_session is not None and self._active_session is not session:
            raise SessionActiveError("Another drag session is already in progress")
        self._active_session = session

    def release(self, session: object) -> None:
        if self._active_session is session:
            self._active_session = None
