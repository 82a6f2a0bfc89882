"""DragSession: 세그먼트 드래그 한 번(pointer-down → move × N → up)의 상태 머신.

Idle → Dragging → {Resolving, Idle}. 드래그 중에는 committed 세그먼트를
건드리지 않고 provisional 사본만 움직인다. 놓는 순간 겹침이 없으면 단순
이동으로 커밋하고, 다른 세그먼트 위에 떨어지면 Resolving 상태에서
호출자의 정책 선택(또는 취소)을 기다린다.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from enum import Enum, auto

from cliparranger.models.errors import DragStateError, InvariantViolation
from cliparranger.models.segment import Segment
from cliparranger.models.timeline import Timeline
from cliparranger.services.collision_resolver import (
    CollisionResolver,
    Resolution,
    ResolutionPolicy,
)
from cliparranger.services.coordinate_mapper import CoordinateMapper
from cliparranger.utils.config import SNAP_THRESHOLD_PX, TIME_TOLERANCE_S
from cliparranger.utils.time_utils import seconds_to_precise

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ 상수

class DragState(Enum):
    """세션 상태."""
    IDLE = auto()
    DRAGGING = auto()
    RESOLVING = auto()


class DragResult(Enum):
    """end_drag 결과."""
    UNCHANGED = auto()   # 제자리에 놓음
    MOVED = auto()       # 단순 이동 커밋
    COLLISION = auto()   # Resolving 진입, 정책 선택 대기
    REVERTED = auto()    # 허용되지 않는 위치 → 원위치


class ResolutionOutcome(Enum):
    """resolve_collision 결과."""
    APPLIED = auto()
    REJECTED = auto()    # 정책이 no-op (가장자리 근처 분할 등)
    CANCELLED = auto()


@dataclass(frozen=True)
class PendingCollision:
    """Resolving 상태에서 호출자에게 보여줄 충돌 정보."""

    target_id: str
    dragged_id: str
    original_track_index: int
    original_track_position: float
    drop_time: float

    def as_descriptor(self) -> dict:
        return {
            "target_id": self.target_id,
            "dropped_id": self.dragged_id,
            "drop_time": self.drop_time,
        }


class DragSession:
    """명시적으로 전달되는 드래그 세션 객체.

    한 타임라인에 동시에 하나의 세션만 Dragging/Resolving 상태일 수 있다
    (Timeline.claim 으로 보장). 포인터 좌표는 스크롤 보정된 content 좌표.
    """

    def __init__(self, timeline: Timeline, mapper: CoordinateMapper | None = None,
                 resolver: CollisionResolver | None = None,
                 snap_enabled: bool = False,
                 snap_threshold_px: float = SNAP_THRESHOLD_PX) -> None:
        self.timeline = timeline
        self.mapper = mapper or CoordinateMapper(num_tracks=timeline.num_tracks)
        self.resolver = resolver or CollisionResolver(min_duration=timeline.min_duration)
        self.snap_enabled = snap_enabled
        self.snap_threshold_px = snap_threshold_px

        self._state = DragState.IDLE
        self._dragged_id: str | None = None
        self._original_track_index: int = 0
        self._original_track_position: float = 0.0
        self._grab_dx: float = 0.0
        self._grab_dy: float = 0.0
        self._provisional: Segment | None = None
        self._preview_target_id: str | None = None
        self._preview_time: float | None = None
        self._pending: PendingCollision | None = None

        self.snap_guide_time: float | None = None
        self.last_resolution: Resolution | None = None

    # ================================================================
    # 상태 조회
    # ================================================================

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not DragState.IDLE

    @property
    def dragged_id(self) -> str | None:
        return self._dragged_id

    @property
    def provisional(self) -> Segment | None:
        """드래그 중인 세그먼트의 임시 위치 (사본)."""
        return self._provisional.clone() if self._provisional else None

    @property
    def pending_collision(self) -> PendingCollision | None:
        return self._pending

    @property
    def collision_preview(self) -> tuple[str, float] | None:
        """드래그 중 겹친 대상과 예상 절단 위치 (target_id, cut_time)."""
        if self._state is not DragState.DRAGGING or self._preview_target_id is None:
            return None
        return self._preview_target_id, self._preview_time

    def display_segments(self) -> list[Segment]:
        """렌더링용 세그먼트 목록. provisional 위치가 반영된다."""
        if self._provisional is None:
            return list(self.timeline.segments)
        return [
            self._provisional if s.segment_id == self._dragged_id else s
            for s in self.timeline.segments
        ]

    # ================================================================
    # 드래그 시작
    # ================================================================

    def begin_drag(self, segment_id: str, x: float, y: float) -> bool:
        """세그먼트 위 pointer-down. 알 수 없는 세그먼트면 False.

        Raises:
            DragStateError: 이 세션이 이미 진행 중.
            SessionActiveError: 다른 세션이 타임라인을 점유 중.
        """
        if self._state is not DragState.IDLE:
            raise DragStateError(f"Cannot begin a drag while {self._state.name}")
        seg = self.timeline.get_segment(segment_id)
        if seg is None:
            return False

        self.timeline.claim(self)
        self._state = DragState.DRAGGING
        self._dragged_id = segment_id
        self._original_track_index = seg.track_index
        self._original_track_position = seg.track_position
        self._grab_dx = x - self.mapper.content_x_from_time(seg.track_position)
        self._grab_dy = y - self.mapper.content_y_from_track_index(seg.track_index)
        self._provisional = seg.clone()
        self._preview_target_id = None
        self._preview_time = None
        self._pending = None
        self.snap_guide_time = None
        logger.debug(
            f"Drag start {segment_id} from track {seg.track_index} at {seg.track_position:.3f}s "
            f"(grab offset {self._grab_dx:.1f}, {self._grab_dy:.1f})"
        )
        return True

    # ================================================================
    # 드래그 업데이트
    # ================================================================

    def update_drag(self, x: float, y: float) -> bool:
        """pointer-move. 처리했으면 True. Dragging 이 아니면 무시."""
        if self._state is not DragState.DRAGGING or self._provisional is None:
            return False

        prov = self._provisional
        candidate_time = self.mapper.time_from_content_x(x - self._grab_dx)
        center_y = y - self._grab_dy + self.mapper.track_height / 2
        candidate_track = self.mapper.track_index_from_content_y(center_y)
        candidate_track = min(candidate_track, self.timeline.num_tracks - 1)

        if self.snap_enabled:
            candidate_time = self._apply_snap(candidate_track, candidate_time, prov.duration)
        else:
            self.snap_guide_time = None

        prov.track_index = candidate_track
        prov.track_position = candidate_time

        target = None
        if not prov.is_overlay:
            target = self.timeline.find_collision(
                candidate_track, candidate_time,
                interval_end=candidate_time + prov.duration,
                exclude_id=self._dragged_id,
            )
        if target is not None:
            self._preview_target_id = target.segment_id
            self._preview_time = candidate_time
        else:
            self._preview_target_id = None
            self._preview_time = None

        logger.debug(
            f"Drag {self._dragged_id} → track {candidate_track} at {candidate_time:.3f}s"
            + (f" over {target.segment_id}" if target else "")
        )
        return True

    # ================================================================
    # 드래그 종료
    # ================================================================

    def end_drag(self, x: float, y: float) -> DragResult:
        """pointer-up. 단순 이동 커밋 또는 Resolving 진입.

        Raises:
            DragStateError: Dragging 상태가 아님.
            InvariantViolation: 커밋이 불변식을 깨뜨림 (세션은 Idle 로 복귀).
        """
        if self._state is not DragState.DRAGGING:
            raise DragStateError(f"Cannot end a drag while {self._state.name}")
        self.update_drag(x, y)
        prov = self._provisional

        if self.timeline.get_segment(self._dragged_id) is None:
            logger.warning(f"Dragged segment {self._dragged_id} vanished; reverting")
            self._reset()
            return DragResult.REVERTED

        if prov.is_overlay and self._overlay_conflict(prov):
            logger.info(f"Overlay {self._dragged_id} dropped on another overlay; reverting")
            self._reset()
            return DragResult.REVERTED

        if self._preview_target_id is not None:
            self._pending = PendingCollision(
                target_id=self._preview_target_id,
                dragged_id=self._dragged_id,
                original_track_index=self._original_track_index,
                original_track_position=self._original_track_position,
                drop_time=prov.track_position,
            )
            self._state = DragState.RESOLVING
            logger.info(
                f"Collision: {self._dragged_id} dropped on {self._preview_target_id} "
                f"at {seconds_to_precise(prov.track_position)}; awaiting policy"
            )
            return DragResult.COLLISION

        if (prov.track_index == self._original_track_index
                and abs(prov.track_position - self._original_track_position) <= TIME_TOLERANCE_S):
            self._reset()
            return DragResult.UNCHANGED

        candidate = [
            prov if s.segment_id == self._dragged_id else s
            for s in self.timeline.snapshot()
        ]
        self._commit(candidate)
        logger.info(
            f"Moved {prov.segment_id} to track {prov.track_index} at {seconds_to_precise(prov.track_position)}"
        )
        self._reset()
        return DragResult.MOVED

    # ================================================================
    # 충돌 해결
    # ================================================================

    def resolve_collision(self, policy: ResolutionPolicy | str | None) -> ResolutionOutcome:
        """Resolving 상태에서 정책 적용. None 또는 "cancel" 이면 취소.

        Raises:
            DragStateError: Resolving 상태가 아님.
            InvariantViolation: 제안된 세그먼트 집합이 불변식을 깨뜨림.
        """
        if self._state is not DragState.RESOLVING or self._pending is None:
            raise DragStateError(f"No collision to resolve while {self._state.name}")
        if isinstance(policy, str) and not isinstance(policy, ResolutionPolicy):
            policy = ResolutionPolicy.from_choice(policy)
        if policy is None:
            self.cancel_drag()
            return ResolutionOutcome.CANCELLED

        pending = self._pending
        if (self.timeline.get_segment(pending.target_id) is None
                or self.timeline.get_segment(pending.dragged_id) is None):
            logger.warning(f"Collision target {pending.target_id} no longer exists; cancelling")
            self.cancel_drag()
            return ResolutionOutcome.CANCELLED

        resolution = self.resolver.resolve(
            self.timeline.segments, pending.target_id, pending.dragged_id,
            pending.drop_time, policy,
        )
        if resolution is None:
            self._reset()
            return ResolutionOutcome.REJECTED

        self._commit(resolution.segments)
        self.last_resolution = resolution
        logger.info(
            f"Applied {policy.value}: {pending.dragged_id} on {pending.target_id} "
            f"at {seconds_to_precise(pending.drop_time)} "
            f"(created {len(resolution.created_ids)}, shifted {resolution.shifted_count})"
        )
        self._reset()
        return ResolutionOutcome.APPLIED

    def cancel_drag(self) -> None:
        """진행 중인 드래그/충돌을 버리고 드래그 전 상태로 되돌린다."""
        if self._state is DragState.IDLE:
            return
        logger.debug(
            f"Drag of {self._dragged_id} cancelled; stays on track {self._original_track_index} "
            f"at {self._original_track_position:.3f}s"
        )
        self._reset()

    # ================================================================
    # 내부 헬퍼
    # ================================================================

    def _commit(self, segments: list[Segment]) -> None:
        try:
            self.timeline.replace_segments(segments, owner=self)
        except InvariantViolation as e:
            logger.error(f"Rejected commit for {self._dragged_id}: {e}")
            self._reset()
            raise

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._dragged_id = None
        self._provisional = None
        self._preview_target_id = None
        self._preview_time = None
        self._pending = None
        self.snap_guide_time = None
        self.timeline.release(self)

    def _overlay_conflict(self, prov: Segment) -> bool:
        for seg in self.timeline.segments:
            if seg.segment_id == prov.segment_id or not seg.is_overlay:
                continue
            if prov.overlaps(seg):
                return True
        return False

    # ---- 자석 스냅 ----

    def snap_candidates(self, track_index: int) -> list[float]:
        """트랙 위 다른 세그먼트 경계(초) 후보, 정렬된 상태."""
        candidates: set[float] = {0.0}
        for seg in self.timeline.segments:
            if seg.track_index != track_index or seg.segment_id == self._dragged_id:
                continue
            candidates.add(seg.track_position)
            candidates.add(seg.track_end)
        return sorted(candidates)

    def _nearest(self, time_s: float, candidates: list[float]) -> float | None:
        idx = bisect.bisect_left(candidates, time_s)
        closest = None
        min_dist = float("inf")
        for i in (idx - 1, idx):
            if 0 <= i < len(candidates):
                dist = abs(candidates[i] - time_s)
                if dist < min_dist:
                    min_dist = dist
                    closest = candidates[i]
        if closest is None:
            return None
        dist_px = abs(self.mapper.content_x_from_time(closest) - self.mapper.content_x_from_time(time_s))
        return closest if dist_px <= self.snap_threshold_px else None

    def _apply_snap(self, track_index: int, start: float, duration: float) -> float:
        """시작/끝 중 더 가까운 경계에 자석 스냅."""
        candidates = self.snap_candidates(track_index)
        snapped_start = self._nearest(start, candidates)
        snapped_end = self._nearest(start + duration, candidates)

        final = start
        self.snap_guide_time = None
        if snapped_start is not None and snapped_end is not None:
            if abs(snapped_start - start) <= abs(snapped_end - (start + duration)):
                final, self.snap_guide_time = snapped_start, snapped_start
            else:
                final, self.snap_guide_time = snapped_end - duration, snapped_end
        elif snapped_start is not None:
            final, self.snap_guide_time = snapped_start, snapped_start
        elif snapped_end is not None:
            final, self.snap_guide_time = snapped_end - duration, snapped_end
        return max(0.0, final)
