# remodel/routers/auth.py
# Identity endpoints called by the external session component.
# None of them returns or logs a password.

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from remodel.db import get_session
from remodel.errors import NotFound
from remodel.models import User
from remodel.schemas import IdentifierBody, LastLoginBody, UserCreate, VerifyBody
from remodel.security import require_admin
from remodel.services import users as user_store

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/user-by-identifier")
def user_by_identifier(body: IdentifierBody, session: Session = Depends(get_session)):
    user = user_store.find_by_identifier(session, body.identifier)
    if user is None:
        raise NotFound("User not found")
    return {"success": True, "user": user_store.user_summary(user)}


@router.post("/verify")
def verify(body: VerifyBody, session: Session = Depends(get_session)):
    summary = user_store.verify_credentials(session, body.identifier, body.password)
    return {"success": True, "user": summary}


@router.post("/update-last-login")
def update_last_login(body: LastLoginBody, session: Session = Depends(get_session)):
    # silent on unknown ids so repeated calls stay harmless
    user_store.record_last_login(session, body.user_id)
    return {"success": True}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    user = user_store.create_user(session, **body.model_dump())
    return {"success": True, "user": user_store.user_summary(user)}
