"""Tests for the four collision resolution policies."""

import pytest

from cliparranger.models.segment import Segment
from cliparranger.models.source import Source, SourceCatalog
from cliparranger.models.timeline import Timeline
from cliparranger.services.collision_resolver import (
    CollisionResolver,
    ResolutionPolicy,
    shift_track,
)


def _by_position(segments, track_index=0):
    return sorted((s for s in segments if s.track_index == track_index), key=lambda s: s.track_position)


class TestResolutionPolicy:
    def test_values(self):
        assert ResolutionPolicy("insert-before") is ResolutionPolicy.INSERT_BEFORE
        assert ResolutionPolicy.REPLACE_SEGMENT.value == "replace-segment"

    def test_from_choice_aliases(self):
        assert ResolutionPolicy.from_choice("play-front") is ResolutionPolicy.INSERT_BEFORE
        assert ResolutionPolicy.from_choice("play-behind") is ResolutionPolicy.INSERT_AFTER
        assert ResolutionPolicy.from_choice("split-insert") is ResolutionPolicy.SPLIT_AND_INSERT
        assert ResolutionPolicy.from_choice("replace-segment") is ResolutionPolicy.REPLACE_SEGMENT
        assert ResolutionPolicy.from_choice("cancel") is None

    def test_from_choice_unknown(self):
        with pytest.raises(ValueError):
            ResolutionPolicy.from_choice("overlay")

    def test_titles(self):
        assert ResolutionPolicy.INSERT_BEFORE.title == "Play in Front"
        assert "Split the target file" in ResolutionPolicy.SPLIT_AND_INSERT.description


class TestShiftTrack:
    def test_shifts_at_or_after_threshold(self):
        segs = [
            Segment("a", 0.0, 2.0, track_position=0.0),
            Segment("a", 0.0, 2.0, track_position=2.0),
            Segment("a", 0.0, 2.0, track_position=5.0),
            Segment("a", 0.0, 2.0, track_index=1, track_position=5.0),
        ]
        moved = shift_track(segs, 0, 2.0, 3.0, exclude_ids=[segs[2].segment_id])
        assert moved == 1
        assert [s.track_position for s in segs] == [0.0, 5.0, 5.0, 5.0]

    def test_zero_delta(self):
        segs = [Segment("a", 0.0, 2.0)]
        assert shift_track(segs, 0, 0.0, 0.0) == 0


class TestCollisionResolver:
    """Track 0 holds A [0, 10) at 0; B (4 s) is dragged from track 1."""

    def setup_method(self):
        self.catalog = SourceCatalog([Source("a", 10.0), Source("b", 4.0), Source("c", 3.0)])
        self.a = Segment("a", 0.0, 10.0, track_index=0, track_position=0.0)
        self.b = Segment("b", 0.0, 4.0, track_index=1, track_position=0.0)
        self.segments = [self.a, self.b]
        self.resolver = CollisionResolver()
        self.timeline = Timeline(self.catalog)

    def _resolve(self, drop_time, policy, segments=None):
        return self.resolver.resolve(
            segments or self.segments, self.a.segment_id, self.b.segment_id, drop_time, policy
        )

    def test_insert_before(self):
        res = self._resolve(5.0, ResolutionPolicy.INSERT_BEFORE)
        track = _by_position(res.segments)
        assert [s.segment_id for s in track] == [self.b.segment_id, self.a.segment_id]
        assert track[0].track_position == 0.0
        assert track[1].track_position == pytest.approx(4.0)
        assert res.shifted_count == 1
        assert res.created_ids == []
        assert self.timeline.validate(res.segments) == []

    def test_insert_after(self):
        c = Segment("c", 0.0, 3.0, track_index=0, track_position=12.0)
        res = self._resolve(5.0, ResolutionPolicy.INSERT_AFTER, [self.a, self.b, c])
        track = _by_position(res.segments)
        assert [s.segment_id for s in track] == [self.a.segment_id, self.b.segment_id, c.segment_id]
        assert track[1].track_position == pytest.approx(10.0)
        assert track[2].track_position == pytest.approx(16.0)
        assert self.timeline.validate(res.segments) == []

    def test_split_and_insert(self):
        res = self._resolve(5.0, ResolutionPolicy.SPLIT_AND_INSERT)
        first, dragged, second = _by_position(res.segments)
        assert (first.source_start, first.source_end, first.track_position) == (0.0, 5.0, 0.0)
        assert dragged.segment_id == self.b.segment_id
        assert dragged.track_position == pytest.approx(5.0)
        assert dragged.duration == pytest.approx(4.0)
        assert (second.source_start, second.source_end) == (5.0, 10.0)
        assert second.track_position == pytest.approx(9.0)
        assert res.consumed_ids == [self.a.segment_id]
        assert set(res.created_ids) == {first.segment_id, second.segment_id}
        assert self.a.segment_id not in {first.segment_id, second.segment_id}
        assert self.timeline.validate(res.segments) == []

    def test_split_shifts_later_segments(self):
        c = Segment("c", 0.0, 3.0, track_index=0, track_position=10.0)
        res = self._resolve(5.0, ResolutionPolicy.SPLIT_AND_INSERT, [self.a, self.b, c])
        shifted = next(s for s in res.segments if s.segment_id == c.segment_id)
        assert shifted.track_position == pytest.approx(14.0)
        assert res.shifted_count == 1

    @pytest.mark.parametrize("drop_time", [0.05, 0.0, 9.95, 10.0])
    def test_split_near_edge_rejected(self, drop_time):
        assert self._resolve(drop_time, ResolutionPolicy.SPLIT_AND_INSERT) is None

    @pytest.mark.parametrize("drop_time", [0.1, 9.9])
    def test_split_leaving_min_duration_piece_rejected(self, drop_time):
        assert self._resolve(drop_time, ResolutionPolicy.SPLIT_AND_INSERT) is None

    def test_split_just_past_min_duration(self):
        res = self._resolve(0.11, ResolutionPolicy.SPLIT_AND_INSERT)
        assert res is not None
        assert _by_position(res.segments)[0].duration == pytest.approx(0.11)
        assert self.timeline.validate(res.segments) == []

    def test_split_round_trip(self):
        """Removing the inserted segment and joining the pieces restores the original window."""
        a = Segment("a", 2.0, 9.0, track_index=0, track_position=3.0)
        res = self.resolver.resolve(
            [a, self.b], a.segment_id, self.b.segment_id, 6.5, ResolutionPolicy.SPLIT_AND_INSERT
        )
        pieces = [s for s in _by_position(res.segments) if s.segment_id != self.b.segment_id]
        assert len(pieces) == 2
        first, second = pieces
        assert first.source_end == pytest.approx(second.source_start)
        assert first.source_start == pytest.approx(a.source_start)
        assert second.source_end == pytest.approx(a.source_end)
        assert first.duration + second.duration == pytest.approx(a.duration)

    def test_replace_segment(self):
        res = self._resolve(1.0, ResolutionPolicy.REPLACE_SEGMENT)
        before, dragged, after = _by_position(res.segments)
        assert (before.source_start, before.source_end, before.track_position) == (0.0, 1.0, 0.0)
        assert dragged.segment_id == self.b.segment_id
        assert dragged.track_position == pytest.approx(1.0)
        assert (after.source_start, after.source_end) == (5.0, 10.0)
        assert after.track_position == pytest.approx(5.0)
        assert res.shifted_count == 0
        assert self.timeline.validate(res.segments) == []

    def test_replace_drops_thin_remnant(self):
        res = self._resolve(0.05, ResolutionPolicy.REPLACE_SEGMENT)
        track = _by_position(res.segments)
        assert len(track) == 2
        assert track[0].segment_id == self.b.segment_id
        assert track[1].source_start == pytest.approx(4.05)
        assert self.timeline.validate(res.segments) == []

    def test_replace_drops_min_duration_remnant(self):
        # A remnant of exactly 0.1 s before the window is not kept
        res = self._resolve(0.1, ResolutionPolicy.REPLACE_SEGMENT)
        track = _by_position(res.segments)
        assert [s.segment_id for s in track][0] == self.b.segment_id
        assert len(track) == 2
        assert self.timeline.validate(res.segments) == []

    def test_replace_drops_min_duration_remnant_after(self):
        res = self._resolve(5.9, ResolutionPolicy.REPLACE_SEGMENT)
        track = _by_position(res.segments)
        assert len(track) == 2
        assert track[-1].segment_id == self.b.segment_id
        assert self.timeline.validate(res.segments) == []

    def test_replace_at_target_end(self):
        res = self._resolve(6.0, ResolutionPolicy.REPLACE_SEGMENT)
        track = _by_position(res.segments)
        assert len(track) == 2
        assert track[0].source_end == pytest.approx(6.0)
        assert track[1].segment_id == self.b.segment_id
        assert len(res.created_ids) == 1

    def test_replace_spilling_onto_neighbour_rejected(self):
        c = Segment("c", 0.0, 3.0, track_index=0, track_position=10.0)
        assert self._resolve(8.0, ResolutionPolicy.REPLACE_SEGMENT, [self.a, self.b, c]) is None
        assert self._resolve(6.0, ResolutionPolicy.REPLACE_SEGMENT, [self.a, self.b, c]) is not None

    def test_input_is_not_mutated(self):
        for policy in ResolutionPolicy:
            self._resolve(5.0, policy)
        assert (self.a.track_index, self.a.track_position, self.a.source_end) == (0, 0.0, 10.0)
        assert (self.b.track_index, self.b.track_position) == (1, 0.0)

    def test_missing_target(self):
        res = self.resolver.resolve(
            self.segments, "missing", self.b.segment_id, 5.0, ResolutionPolicy.INSERT_BEFORE
        )
        assert res is None

    def test_target_cannot_be_dragged(self):
        res = self.resolver.resolve(
            self.segments, self.a.segment_id, self.a.segment_id, 5.0, ResolutionPolicy.INSERT_BEFORE
        )
        assert res is None
