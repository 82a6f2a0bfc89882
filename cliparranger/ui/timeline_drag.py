"""TimelineDragManager: 타임라인 뷰의 포인터 이벤트를 DragSession 호출로 변환.

뷰(위젯)는 마우스 이벤트 좌표와 가로 스크롤 값만 넘기고, 히트 테스트·
드래그 상태·충돌 대기·Undo 기록은 모두 이 매니저가 맡는다.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import QObject, Signal

from cliparranger.models.errors import InvariantViolation, SessionActiveError
from cliparranger.models.segment import Segment
from cliparranger.services.collision_resolver import ResolutionPolicy
from cliparranger.services.coordinate_mapper import CoordinateMapper
from cliparranger.services.drag_session import (
    DragResult,
    DragSession,
    DragState,
    ResolutionOutcome,
)
from cliparranger.ui.commands import (
    ArrangeSegmentsCommand,
    ImportSourceCommand,
    RemoveSegmentCommand,
)
from cliparranger.ui.timeline_hit_test import TimelineHitTester
from cliparranger.utils.i18n import tr
from cliparranger.utils.time_utils import seconds_to_display

if TYPE_CHECKING:
    from PySide6.QtGui import QUndoStack

    from cliparranger.models.timeline import Timeline


class TimelineDragManager(QObject):
    """멀티 트랙 타임라인 전용 드래그 매니저."""

    segments_changed = Signal()
    split_preview_changed = Signal(object)   # (target_id, cut_time) 또는 None
    collision_pending = Signal(object)       # {"target_id", "dropped_id", "drop_time"}
    arrangement_committed = Signal(str)      # Undo 항목 이름

    def __init__(self, timeline: Timeline, mapper: CoordinateMapper | None = None,
                 undo_stack: QUndoStack | None = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.timeline = timeline
        self.undo_stack = undo_stack
        self.scroll_x: float = 0.0
        self.session = DragSession(timeline, mapper or CoordinateMapper(num_tracks=timeline.num_tracks))
        self._hit_tester = TimelineHitTester(self.session.mapper)
        self._before: list[Segment] | None = None
        self._last_preview: tuple[str, float] | None = None

    # ================================================================
    # 좌표/줌
    # ================================================================

    @property
    def mapper(self) -> CoordinateMapper:
        return self.session.mapper

    def set_mapper(self, mapper: CoordinateMapper) -> None:
        self.session.mapper = mapper
        self._hit_tester = TimelineHitTester(mapper)
        self.segments_changed.emit()

    def set_zoom(self, zoom: float) -> None:
        self.set_mapper(self.mapper.with_zoom(zoom))

    def _content_x(self, x: float) -> float:
        return self.mapper.scroll_corrected_x(x, self.scroll_x)

    def segment_at_point(self, x: float, y: float) -> Segment | None:
        return self._hit_tester.hit_test(self.session.display_segments(), self._content_x(x), y)

    # ================================================================
    # 포인터 이벤트
    # ================================================================

    def on_press(self, x: float, y: float) -> bool:
        """세그먼트 위에서 눌렀으면 드래그 시작 후 True."""
        if self.session.is_active:
            return False
        seg = self.segment_at_point(x, y)
        if seg is None:
            return False
        self._before = self.timeline.snapshot()
        return self.session.begin_drag(seg.segment_id, self._content_x(x), y)

    def on_move(self, x: float, y: float) -> bool:
        """드래그 중 업데이트. 처리했으면 True."""
        if not self.session.update_drag(self._content_x(x), y):
            return False
        self._emit_preview()
        self.segments_changed.emit()
        return True

    def on_release(self, x: float, y: float) -> DragResult | None:
        """드래그 종료: 커밋/충돌 대기/원위치."""
        if self.session.state is not DragState.DRAGGING:
            return None
        dropped_id = self.session.dragged_id
        try:
            result = self.session.end_drag(self._content_x(x), y)
        except InvariantViolation:
            self._before = None
            raise
        finally:
            self._emit_preview()

        if result is DragResult.COLLISION:
            self.collision_pending.emit(self.session.pending_collision.as_descriptor())
        elif result is DragResult.MOVED:
            moved = self.timeline.get_segment(dropped_id)
            self._record(
                f"{tr('Move segment')} → {moved.track_index + 1} @ {seconds_to_display(moved.track_position)}"
            )
        self.segments_changed.emit()
        return result

    def choose(self, choice: ResolutionPolicy | str | None) -> ResolutionOutcome:
        """충돌 대화상자 선택 전달 (정책 값, 별칭 또는 "cancel")."""
        try:
            outcome = self.session.resolve_collision(choice)
        except InvariantViolation:
            self._before = None
            raise
        if outcome is ResolutionOutcome.APPLIED:
            self._record(self.session.last_resolution.policy.title)
        else:
            self._before = None
        self.segments_changed.emit()
        return outcome

    def cancel(self) -> None:
        """Esc 등으로 드래그 취소."""
        if not self.session.is_active:
            return
        self.session.cancel_drag()
        self._before = None
        self._emit_preview()
        self.segments_changed.emit()

    # ================================================================
    # 타임라인 편집 (Undo 가능)
    # ================================================================

    def import_source(self, source_id: str, track_index: int = 0,
                      track_position: float | None = None, is_overlay: bool = False) -> Segment | None:
        # QUndoStack.push() swallows exceptions raised from redo(); check first
        self._ensure_idle()
        placed = self.timeline.build_source_segment(source_id, track_index, track_position, is_overlay)
        self.timeline.check(self.timeline.snapshot() + [placed])
        cmd = ImportSourceCommand(self.timeline, source_id, track_index, track_position, is_overlay)
        self._push_or_run(cmd)
        self.segments_changed.emit()
        return cmd.segment

    def remove_segment(self, segment_id: str) -> bool:
        self._ensure_idle()
        if self.timeline.get_segment(segment_id) is None:
            return False
        self._push_or_run(RemoveSegmentCommand(self.timeline, segment_id))
        self.segments_changed.emit()
        return True

    # ================================================================
    # 내부 헬퍼
    # ================================================================

    def _ensure_idle(self) -> None:
        if self.timeline.active_session is not None:
            raise SessionActiveError("A drag is in progress; finish or cancel it first")

    def _push_or_run(self, cmd) -> None:
        if self.undo_stack is not None:
            self.undo_stack.push(cmd)
        else:
            cmd.redo()

    def _record(self, text: str) -> None:
        before, self._before = self._before, None
        if before is not None and self.undo_stack is not None:
            self.undo_stack.push(ArrangeSegmentsCommand(self.timeline, before, self.timeline.snapshot(), text))
        self.arrangement_committed.emit(text)

    def _emit_preview(self) -> None:
        preview = self.session.collision_preview
        if preview != self._last_preview:
            self._last_preview = preview
            self.split_preview_changed.emit(preview)
