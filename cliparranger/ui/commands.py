"""QUndoCommand subclasses for timeline arrangement edits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtGui import QUndoCommand

from cliparranger.utils.i18n import tr

if TYPE_CHECKING:
    from cliparranger.models.segment import Segment
    from cliparranger.models.timeline import Timeline


class ArrangeSegmentsCommand(QUndoCommand):
    """Swap the whole segment set between two snapshots.

    Pushed after a drag has already committed its arrangement; the first
    redo() re-applies the same snapshot and is a no-op on content.
    """

    def __init__(self, timeline: Timeline, before: list[Segment], after: list[Segment],
                 text: str | None = None):
        super().__init__(text or tr("Arrange segments"))
        self._timeline = timeline
        self._before = [s.clone() for s in before]
        self._after = [s.clone() for s in after]

    def redo(self) -> None:
        self._timeline.restore(self._after)

    def undo(self) -> None:
        self._timeline.restore(self._before)


class ImportSourceCommand(QUndoCommand):
    """Place a whole source on a track as a new segment."""

    def __init__(self, timeline: Timeline, source_id: str, track_index: int = 0,
                 track_position: float | None = None, is_overlay: bool = False):
        source = timeline.catalog.get_source(source_id)
        name = source.name if source and source.name else source_id
        super().__init__(f"{tr('Import source')} ({name}) → {track_index + 1}")
        self._timeline = timeline
        self._source_id = source_id
        self._track_index = track_index
        self._track_position = track_position
        self._is_overlay = is_overlay
        self._before: list[Segment] | None = None
        self._after: list[Segment] | None = None
        self.segment: Segment | None = None

    def redo(self) -> None:
        if self._after is None:
            self._before = self._timeline.snapshot()
            self.segment = self._timeline.import_source(
                self._source_id, self._track_index, self._track_position, self._is_overlay
            )
            self._after = self._timeline.snapshot()
        else:
            # Re-place with the same segment id so selections survive redo
            self._timeline.restore(self._after)

    def undo(self) -> None:
        if self._before is not None:
            self._timeline.restore(self._before)


class RemoveSegmentCommand(QUndoCommand):
    """Remove one segment from the timeline."""

    def __init__(self, timeline: Timeline, segment_id: str):
        super().__init__(tr("Remove segment"))
        self._timeline = timeline
        self._segment_id = segment_id
        self._before = timeline.snapshot()

    def redo(self) -> None:
        self._timeline.remove_segment(self._segment_id)

    def undo(self) -> None:
        self._timeline.restore(self._before)
