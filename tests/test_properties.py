"""Randomised add / move / resolve sequences checked against timeline invariants."""

import random

import pytest

from cliparranger.models.source import Source, SourceCatalog
from cliparranger.models.timeline import Timeline
from cliparranger.services.collision_resolver import ResolutionPolicy
from cliparranger.services.drag_session import DragResult, DragSession, DragState

_CHOICES = list(ResolutionPolicy) + [None]


def _catalog():
    return SourceCatalog([
        Source("long", 12.0, has_video=True),
        Source("mid", 5.0, has_video=True, has_audio=True),
        Source("short", 1.5, has_video=True),
        Source("tiny", 0.3, has_audio=True),
        Source("bed", 8.0, has_audio=True),
    ])


def _assert_no_overlap(timeline):
    for track_index in range(timeline.num_tracks):
        content = [s for s in timeline.segments_on_track(track_index) if not s.is_overlay]
        for prev, nxt in zip(content, content[1:]):
            assert prev.track_end <= nxt.track_position + 1e-6, (
                f"track {track_index}: {prev} overlaps {nxt}"
            )
    assert timeline.validate(timeline.segments) == []


def _random_import(rng, timeline):
    source_id = rng.choice(["long", "mid", "short", "tiny", "bed"])
    track_index = rng.randrange(timeline.num_tracks)
    if source_id == "bed":
        timeline.import_source(source_id, track_index, rng.uniform(0, 30), is_overlay=True)
    else:
        timeline.import_source(source_id, track_index)


def _random_drag(rng, timeline, session):
    seg = rng.choice(timeline.segments)
    m = session.mapper
    x = m.content_x_from_time(seg.track_position) + rng.uniform(0, 30)
    y = m.content_y_from_track_index(seg.track_index) + rng.uniform(0, m.track_height - 1)
    assert session.begin_drag(seg.segment_id, x, y)
    for _ in range(rng.randint(0, 6)):
        session.update_drag(rng.uniform(-100, 2500), rng.uniform(-50, 260))
    if rng.random() < 0.1:
        session.cancel_drag()
        return
    result = session.end_drag(rng.uniform(-100, 2500), rng.uniform(-50, 260))
    if result is DragResult.COLLISION:
        session.resolve_collision(rng.choice(_CHOICES))


@pytest.mark.parametrize("seed", range(25))
def test_random_sequences_keep_tracks_disjoint(seed):
    rng = random.Random(seed)
    timeline = Timeline(_catalog())
    session = DragSession(timeline)

    for _ in range(60):
        if not timeline.segments or rng.random() < 0.3:
            _random_import(rng, timeline)
        else:
            _random_drag(rng, timeline, session)
        assert session.state is DragState.IDLE
        assert timeline.active_session is None
        _assert_no_overlap(timeline)


@pytest.mark.parametrize("seed", range(10))
def test_cancel_round_trip(seed):
    rng = random.Random(1000 + seed)
    timeline = Timeline(_catalog())
    for _ in range(8):
        _random_import(rng, timeline)
    session = DragSession(timeline)

    before = [s.to_dict() for s in timeline.segments]
    for seg in timeline.segments:
        session.begin_drag(seg.segment_id, rng.uniform(0, 500), rng.uniform(0, 200))
        for _ in range(rng.randint(1, 10)):
            session.update_drag(rng.uniform(-100, 2500), rng.uniform(-50, 260))
        session.cancel_drag()
    assert [s.to_dict() for s in timeline.segments] == before
