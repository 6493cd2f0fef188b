# remodel/routers/timeline.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from remodel.db import get_session
from remodel.models import User
from remodel.schemas import SaveTimelineBody
from remodel.security import optional_user, require_admin
from remodel.services import timeline as timeline_store

router = APIRouter(prefix="/timeline", tags=["timeline"])


@router.get("")
def get_timeline(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    phases = timeline_store.load_phases(session)
    return {"success": True, "timeline": timeline_store.timeline_payload(phases)}


@router.post("")
def save_timeline(
    body: SaveTimelineBody,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    phases = timeline_store.save_timeline(session, body.timeline.phases)
    return {"success": True, "timeline": timeline_store.timeline_payload(phases)}


@router.delete("/phase/{phase_id}")
def delete_phase(
    phase_id: str,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    phases = timeline_store.delete_phase(session, phase_id)
    return {"success": True, "timeline": timeline_store.timeline_payload(phases)}


@router.post("/phase/{phase_id}/subtasks/{subtask_id}/toggle")
def toggle_subtask(
    phase_id: str,
    subtask_id: str,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    phase = timeline_store.toggle_subtask(session, phase_id, subtask_id)
    return {"success": True, "phase": phase.to_doc()}
