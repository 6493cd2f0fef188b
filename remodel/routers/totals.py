# remodel/routers/totals.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from remodel.db import get_session
from remodel.models import User
from remodel.security import optional_user
from remodel.services import totals as totals_service

router = APIRouter(tags=["totals"])


@router.get("/totals")
def totals(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    return {"success": True, "totals": totals_service.totals_payload(session)}


@router.get("/get-all-categories")
def all_categories(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    return {"success": True, "categories": totals_service.all_categories(session)}
