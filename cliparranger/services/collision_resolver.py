"""
Resolution policies for a segment dropped on top of another segment.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from cliparranger.models.segment import Segment, new_segment_id
from cliparranger.utils.config import MIN_SEGMENT_DURATION_S, TIME_TOLERANCE_S
from cliparranger.utils.i18n import tr

logger = logging.getLogger(__name__)


class ResolutionPolicy(str, Enum):
    """How a collision between a dropped and a target segment is turned into an edit."""

    INSERT_BEFORE = "insert-before"
    INSERT_AFTER = "insert-after"
    SPLIT_AND_INSERT = "split-and-insert"
    REPLACE_SEGMENT = "replace-segment"

    @classmethod
    def from_choice(cls, choice: str) -> ResolutionPolicy | None:
        """Map a dialog choice to a policy. ``"cancel"`` maps to None.

        Raises:
            ValueError: *choice* is not a known policy or alias.
        """
        if choice == "cancel":
            return None
        alias = _CHOICE_ALIASES.get(choice)
        if alias is not None:
            return alias
        return cls(choice)

    @property
    def title(self) -> str:
        return tr(_POLICY_TEXT[self][0])

    @property
    def description(self) -> str:
        return tr(_POLICY_TEXT[self][1])


_CHOICE_ALIASES = {
    "play-front": ResolutionPolicy.INSERT_BEFORE,
    "play-behind": ResolutionPolicy.INSERT_AFTER,
    "split-insert": ResolutionPolicy.SPLIT_AND_INSERT,
}

_POLICY_TEXT = {
    ResolutionPolicy.INSERT_BEFORE: (
        "Play in Front",
        "Play the dropped file first, then play the target file",
    ),
    ResolutionPolicy.INSERT_AFTER: (
        "Play Behind",
        "Play the target file first, then play the dropped file",
    ),
    ResolutionPolicy.SPLIT_AND_INSERT: (
        "Split and Insert",
        "Split the target file at drop point and insert the dropped file in the middle",
    ),
    ResolutionPolicy.REPLACE_SEGMENT: (
        "Replace Segment",
        "Replace the segment of target file (matching dropped file duration) with the dropped file",
    ),
}


@dataclass
class Resolution:
    """Outcome of applying a policy: the full proposed segment set."""

    policy: ResolutionPolicy
    segments: list[Segment]
    created_ids: list[str] = field(default_factory=list)
    consumed_ids: list[str] = field(default_factory=list)
    shifted_count: int = 0


def shift_track(segments: Iterable[Segment], track_index: int, threshold: float,
                delta: float, exclude_ids: Iterable[str] = ()) -> int:
    """Push every segment on *track_index* starting at or after *threshold* by *delta*.

    Returns:
        The number of segments moved.
    """
    if delta == 0:
        return 0
    excluded = set(exclude_ids)
    moved = 0
    for seg in segments:
        if seg.track_index != track_index or seg.segment_id in excluded:
            continue
        if seg.track_position >= threshold - TIME_TOLERANCE_S:
            seg.track_position += delta
            moved += 1
    return moved


class CollisionResolver:
    """
    Applies one of the four resolution policies to a copy of the segment set.

    Nothing passed in is mutated. ``resolve`` returns None when the policy
    cannot produce a valid arrangement (a cut too close to an edge, or a
    replaced window spilling onto a neighbouring segment); the caller then
    keeps the committed set untouched.
    """

    def __init__(self, min_duration: float = MIN_SEGMENT_DURATION_S) -> None:
        self.min_duration = min_duration

    def resolve(self, segments: Iterable[Segment], target_id: str, dragged_id: str,
                drop_time: float, policy: ResolutionPolicy) -> Resolution | None:
        """
        Propose the segment set after dropping *dragged_id* on *target_id*.

        Args:
            segments: The committed set (the dragged segment at its pre-drag place).
            target_id: Segment under the drop point.
            dragged_id: The moved segment.
            drop_time: Timeline time of the drop (the dragged segment's left edge).
            policy: The policy to apply.

        Returns:
            The proposed Resolution, or None if the policy rejects this drop.
        """
        working = [s.clone() for s in segments]
        target = next((s for s in working if s.segment_id == target_id), None)
        dragged = next((s for s in working if s.segment_id == dragged_id), None)
        if target is None or dragged is None or target is dragged:
            logger.warning(f"Cannot resolve {policy.value}: target={target_id} dragged={dragged_id} not both present")
            return None

        handler = {
            ResolutionPolicy.INSERT_BEFORE: self._insert_before,
            ResolutionPolicy.INSERT_AFTER: self._insert_after,
            ResolutionPolicy.SPLIT_AND_INSERT: self._split_and_insert,
            ResolutionPolicy.REPLACE_SEGMENT: self._replace_segment,
        }[policy]
        resolution = handler(working, target, dragged, drop_time)
        if resolution is None:
            logger.info(f"{policy.value} rejected for drop of {dragged_id} on {target_id} at {drop_time:.3f}s")
        return resolution

    # -------------------------------------------------------- Policies

    def _insert_before(self, working: list[Segment], target: Segment, dragged: Segment,
                       drop_time: float) -> Resolution:
        track = target.track_index
        anchor = target.track_position
        moved = shift_track(working, track, anchor, dragged.duration, exclude_ids=[dragged.segment_id])
        dragged.track_index = track
        dragged.track_position = anchor
        return Resolution(ResolutionPolicy.INSERT_BEFORE, working, shifted_count=moved)

    def _insert_after(self, working: list[Segment], target: Segment, dragged: Segment,
                      drop_time: float) -> Resolution:
        track = target.track_index
        anchor = target.track_end
        moved = shift_track(working, track, anchor, dragged.duration, exclude_ids=[dragged.segment_id])
        dragged.track_index = track
        dragged.track_position = anchor
        return Resolution(ResolutionPolicy.INSERT_AFTER, working, shifted_count=moved)

    def _split_and_insert(self, working: list[Segment], target: Segment, dragged: Segment,
                          drop_time: float) -> Resolution | None:
        local_offset = drop_time - target.track_position

        # Both pieces must stay longer than min_duration
        if (local_offset <= self.min_duration + TIME_TOLERANCE_S
                or local_offset >= target.duration - self.min_duration - TIME_TOLERANCE_S):
            return None

        track = target.track_index
        target_end = target.track_end
        source_cut = target.source_start + local_offset
        first = Segment(
            source_id=target.source_id,
            source_start=target.source_start,
            source_end=source_cut,
            track_index=track,
            track_position=target.track_position,
            is_overlay=target.is_overlay,
            segment_id=new_segment_id(),
        )
        second = Segment(
            source_id=target.source_id,
            source_start=source_cut,
            source_end=target.source_end,
            track_index=track,
            track_position=first.track_end + dragged.duration,
            is_overlay=target.is_overlay,
            segment_id=new_segment_id(),
        )

        working.remove(target)
        moved = shift_track(working, track, target_end, dragged.duration, exclude_ids=[dragged.segment_id])
        dragged.track_index = track
        dragged.track_position = first.track_end
        working.extend([first, second])
        return Resolution(
            ResolutionPolicy.SPLIT_AND_INSERT,
            working,
            created_ids=[first.segment_id, second.segment_id],
            consumed_ids=[target.segment_id],
            shifted_count=moved,
        )

    def _replace_segment(self, working: list[Segment], target: Segment, dragged: Segment,
                         drop_time: float) -> Resolution | None:
        track = target.track_index
        window_start = drop_time
        window_end = drop_time + dragged.duration

        # The part of the dropped segment outside the target must land on free space
        for seg in working:
            if seg is target or seg is dragged or seg.is_overlay or seg.track_index != track:
                continue
            if seg.track_position < window_end - TIME_TOLERANCE_S and window_start < seg.track_end - TIME_TOLERANCE_S:
                return None

        remnants: list[Segment] = []
        before = window_start - target.track_position
        if before > self.min_duration + TIME_TOLERANCE_S:
            remnants.append(Segment(
                source_id=target.source_id,
                source_start=target.source_start,
                source_end=target.source_start + before,
                track_index=track,
                track_position=target.track_position,
                is_overlay=target.is_overlay,
                segment_id=new_segment_id(),
            ))
        after = target.track_end - window_end
        if after > self.min_duration + TIME_TOLERANCE_S:
            remnants.append(Segment(
                source_id=target.source_id,
                source_start=target.source_end - after,
                source_end=target.source_end,
                track_index=track,
                track_position=window_end,
                is_overlay=target.is_overlay,
                segment_id=new_segment_id(),
            ))

        working.remove(target)
        dragged.track_index = track
        dragged.track_position = window_start
        working.extend(remnants)
        return Resolution(
            ResolutionPolicy.REPLACE_SEGMENT,
            working,
            created_ids=[r.segment_id for r in remnants],
            consumed_ids=[target.segment_id],
        )
