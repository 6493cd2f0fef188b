# remodel/services/timeline.py
"""
Timeline store: one named row holding the ordered remodel phases.

Derived on every read, never stored:
- overall_progress: % of phases Completed (rounded, 0 when empty)
- current_phase: first In Progress phase, else first Not Started, else None

Auto-completion: when a subtask toggle leaves a phase with >= 1 subtask and
all of them completed, the phase becomes Completed. Un-completing a subtask
never moves the phase back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from remodel.db import storage_guard
from remodel.errors import NotFound, ValidationError
from remodel.models import TIMELINE_ID, Timeline, utcnow
from remodel.schemas import Phase, PhaseStatus, normalize_main_image

logger = logging.getLogger("remodel.timeline")


def _load_row(session: Session) -> Timeline:
    """Fetch the singleton, creating an empty one on first use."""
    with storage_guard(session, "loading the timeline"):
        row = session.get(Timeline, TIMELINE_ID)
        if row is not None:
            return row
        try:
            session.add(Timeline(id=TIMELINE_ID, phases=[]))
            session.commit()
            logger.info("Initialized empty timeline")
        except IntegrityError:
            # a concurrent first read created it
            session.rollback()
        row = session.get(Timeline, TIMELINE_ID)
    return row


def sorted_phases(phases: List[Phase]) -> List[Phase]:
    # sorted() is stable: equal orders keep their stored position
    return sorted(phases, key=lambda p: p.order)


def load_phases(session: Session) -> List[Phase]:
    row = _load_row(session)
    return sorted_phases([Phase.model_validate(doc) for doc in row.phases or []])


def overall_progress(phases: List[Phase]) -> int:
    if not phases:
        return 0
    done = sum(1 for p in phases if p.status == PhaseStatus.completed)
    return int(round(100 * done / len(phases)))


def current_phase(phases: List[Phase]) -> Optional[Phase]:
    for wanted in (PhaseStatus.in_progress, PhaseStatus.not_started):
        for p in phases:
            if p.status == wanted:
                return p
    return None


def timeline_payload(phases: List[Phase]) -> Dict[str, Any]:
    phases = sorted_phases(phases)
    current = current_phase(phases)
    return {
        "phases": [p.to_doc() for p in phases],
        "overall_progress": overall_progress(phases),
        "current_phase": current.to_doc() if current else None,
    }


def validate_phases(phases: List[Phase]) -> None:
    """Unique phase ids and orders, start <= end, unique subtask ids per phase."""
    ids: Dict[str, int] = {}
    orders: Dict[int, int] = {}
    for i, phase in enumerate(phases):
        if phase.id in ids:
            raise ValidationError(
                f"phases[{i}].id '{phase.id}' is already used by phases[{ids[phase.id]}]",
                field=f"phases[{i}].id",
            )
        ids[phase.id] = i
        if phase.order in orders:
            raise ValidationError(
                f"phases[{i}].order {phase.order} is already used by phases[{orders[phase.order]}]",
                field=f"phases[{i}].order",
            )
        orders[phase.order] = i
        if phase.start_date and phase.end_date and phase.start_date > phase.end_date:
            raise ValidationError(
                f"phases[{i}] starts after it ends",
                field=f"phases[{i}].endDate",
            )
        subtask_ids = set()
        for j, sub in enumerate(phase.subtasks):
            if sub.id in subtask_ids:
                raise ValidationError(
                    f"phases[{i}].subtasks[{j}].id '{sub.id}' is duplicated",
                    field=f"phases[{i}].subtasks[{j}].id",
                )
            subtask_ids.add(sub.id)


def complete_if_done(phase: Phase) -> Phase:
    if phase.subtasks and all(s.completed for s in phase.subtasks):
        if phase.status != PhaseStatus.completed:
            logger.info("Phase %s auto-completed: all subtasks done", phase.id)
        phase.status = PhaseStatus.completed
    return phase


def apply_auto_completion(phases: List[Phase], previous: List[Phase]) -> List[Phase]:
    """
    A subtask counts as toggled when its completed flag differs from the
    stored subtask with the same id (new subtasks compare against False).
    """
    before = {p.id: {s.id: s.completed for s in p.subtasks} for p in previous}
    for phase in phases:
        flags = before.get(phase.id, {})
        if any(s.completed != flags.get(s.id, False) for s in phase.subtasks):
            complete_if_done(phase)
    return phases


def _normalize(phase: Phase) -> Phase:
    normalize_main_image(phase.images)
    for sub in phase.subtasks:
        normalize_main_image(sub.images)
    return phase


def _write(session: Session, phases: List[Phase], action: str) -> None:
    with storage_guard(session, action):
        row = session.get(Timeline, TIMELINE_ID) or Timeline(id=TIMELINE_ID)
        row.phases = [p.to_doc() for p in phases]
        row.updated_at = utcnow()
        session.add(row)
        session.commit()


def save_timeline(session: Session, phases: List[Phase]) -> List[Phase]:
    """Validate and replace all phases. Last write wins."""
    validate_phases(phases)
    previous = load_phases(session)
    phases = [_normalize(p) for p in apply_auto_completion(phases, previous)]
    _write(session, phases, "saving the timeline")
    logger.info("Timeline saved with %d phase(s)", len(phases))
    return sorted_phases(phases)


def delete_phase(session: Session, phase_id: str) -> List[Phase]:
    """Drop one phase; the other phases keep their order values (gaps allowed)."""
    phases = load_phases(session)
    remaining = [p for p in phases if p.id != phase_id]
    if len(remaining) == len(phases):
        raise NotFound(f"Phase '{phase_id}' not found")
    _write(session, remaining, "deleting a phase")
    return remaining


def toggle_subtask(session: Session, phase_id: str, subtask_id: str) -> Phase:
    phases = load_phases(session)
    phase = next((p for p in phases if p.id == phase_id), None)
    if phase is None:
        raise NotFound(f"Phase '{phase_id}' not found")
    sub = next((s for s in phase.subtasks if s.id == subtask_id), None)
    if sub is None:
        raise NotFound(f"Subtask '{subtask_id}' not found in phase '{phase_id}'")
    sub.completed = not sub.completed
    complete_if_done(phase)
    _write(session, phases, "toggling a subtask")
    return phase
