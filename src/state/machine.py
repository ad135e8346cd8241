"""Status machines for work items and academic works.

Both machines only move forward. Stages may be skipped (a resumed
pipeline jumps over work that is already done), terminal states are
final, and the failure state is reachable from any non-terminal state.
"""

import logging

from src.errors import InvalidTransitionError
from src.state.enums import AcademicStatus, WorkItemStatus
from src.state.models import AcademicWork, StatusChange, WorkItem, _utc_now

logger = logging.getLogger(__name__)


WORK_ITEM_FLOW: list[WorkItemStatus] = [
    WorkItemStatus.PENDING,
    WorkItemStatus.IN_PROGRESS,
    WorkItemStatus.SEARCHING,
    WorkItemStatus.SCRAPING,
    WorkItemStatus.SOURCE_SELECTION,
    WorkItemStatus.STRUCTURE_GENERATION,
    WorkItemStatus.STRUCTURE_READY,
    WorkItemStatus.CONTENT_GENERATION,
    WorkItemStatus.COMPLETED,
]

WORK_ITEM_TERMINAL = frozenset(
    {WorkItemStatus.COMPLETED, WorkItemStatus.CANCELLED, WorkItemStatus.ERROR}
)

WORK_ITEM_FAILURE = frozenset({WorkItemStatus.CANCELLED, WorkItemStatus.ERROR})

ACADEMIC_FLOW: list[AcademicStatus] = [
    AcademicStatus.PENDING,
    AcademicStatus.GENERATING_TOC,
    AcademicStatus.TOC_COMPLETED,
    AcademicStatus.CHAPTER_1_GENERATING,
    AcademicStatus.CHAPTER_1_COMPLETED,
    AcademicStatus.CHAPTER_2_GENERATING,
    AcademicStatus.CHAPTER_2_COMPLETED,
    AcademicStatus.CHAPTER_3_GENERATING,
    AcademicStatus.CHAPTER_3_COMPLETED,
    AcademicStatus.CHAPTER_4_GENERATING,
    AcademicStatus.CHAPTER_4_COMPLETED,
    AcademicStatus.GENERATING_INTRODUCTION,
    AcademicStatus.INTRODUCTION_COMPLETED,
    AcademicStatus.GENERATING_CONCLUSION,
    AcademicStatus.CONCLUSION_COMPLETED,
    AcademicStatus.GENERATING_BIBLIOGRAPHY,
    AcademicStatus.BIBLIOGRAPHY_COMPLETED,
    AcademicStatus.ASSEMBLING,
    AcademicStatus.COMPLETED,
]

_WORK_ITEM_RANK = {status: rank for rank, status in enumerate(WORK_ITEM_FLOW)}
_ACADEMIC_RANK = {status: rank for rank, status in enumerate(ACADEMIC_FLOW)}


# =============================================================================
# Work item status
# =============================================================================


def can_transition(current: WorkItemStatus, target: WorkItemStatus) -> bool:
    """Whether a work item may move from ``current`` to ``target``.

    Writing the current status again is always allowed.
    """
    if current == target:
        return True
    if current in WORK_ITEM_TERMINAL:
        return False
    if target in WORK_ITEM_FAILURE:
        return True
    return _WORK_ITEM_RANK[target] > _WORK_ITEM_RANK[current]


def transition(item: WorkItem, target: WorkItemStatus) -> WorkItem:
    """Move a work item to ``target`` and record the change.

    Raises:
        InvalidTransitionError: If the move goes backwards or leaves a
            terminal state.
    """
    if not can_transition(item.status, target):
        raise InvalidTransitionError(item.status.value, target.value, item.id)
    if item.status == target:
        return item

    now = _utc_now()
    logger.debug(f"Work item {item.id}: {item.status.value} -> {target.value}")
    item.status = target
    item.updated_at = now
    item.status_history.append(StatusChange(status=target, at=now, attempt=item.attempt))
    if target == WorkItemStatus.COMPLETED:
        item.completed_at = now
    return item


def reopen(item: WorkItem) -> WorkItem:
    """Start a new attempt for a cancelled or errored work item.

    The forward-only rule applies within one attempt; reopening starts a
    new one at ``pending``.
    """
    if item.status not in WORK_ITEM_FAILURE:
        raise InvalidTransitionError(
            item.status.value, WorkItemStatus.PENDING.value, item.id
        )
    now = _utc_now()
    item.attempt += 1
    item.status = WorkItemStatus.PENDING
    item.error_message = None
    item.updated_at = now
    item.status_history.append(
        StatusChange(status=WorkItemStatus.PENDING, at=now, attempt=item.attempt)
    )
    return item


# =============================================================================
# Academic work status
# =============================================================================


def chapter_status(number: int, completed: bool = False) -> AcademicStatus:
    """Per-chapter status, e.g. ``chapter_2_generating``.

    Raises:
        ValueError: No status exists for the chapter number.
    """
    phase = "completed" if completed else "generating"
    return AcademicStatus(f"chapter_{number}_{phase}")


def can_advance_academic(current: AcademicStatus, target: AcademicStatus) -> bool:
    """Whether an academic work may move from ``current`` to ``target``."""
    if current == target:
        return True
    if current in (AcademicStatus.COMPLETED, AcademicStatus.FAILED):
        return False
    if target == AcademicStatus.FAILED:
        return True
    return _ACADEMIC_RANK[target] > _ACADEMIC_RANK[current]


def advance_academic(work: AcademicWork, target: AcademicStatus) -> AcademicWork:
    """Move an academic work to ``target``.

    Raises:
        InvalidTransitionError: If the move goes backwards or leaves a
            terminal state.
    """
    if not can_advance_academic(work.status, target):
        raise InvalidTransitionError(work.status.value, target.value, work.work_item_id)
    work.status = target
    if target == AcademicStatus.COMPLETED:
        work.completed_at = _utc_now()
    return work


def resume_academic(work: AcademicWork) -> AcademicWork:
    """Prepare a failed academic work for another attempt.

    Completed sections are kept; generation restarts from the first
    incomplete sub-stage.
    """
    if work.status == AcademicStatus.FAILED:
        work.status = AcademicStatus.PENDING
        work.error_message = None
    return work
