# remodel/services/users.py
"""
Identity store: user records, password hashing, last-login stamps.

The plaintext password only ever lives in a local variable here; it is
hashed before the row is built and never logged or returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, or_, select

from remodel.db import storage_guard
from remodel.errors import AuthError, ConflictError, Forbidden, validation_error_from
from remodel.models import Role, User, utcnow
from remodel.schemas import UserCreate
from remodel.security import hash_password, verify_password

logger = logging.getLogger("remodel.users")


def user_summary(user: User) -> Dict[str, Any]:
    """Public view of a user. There is no password field to leak."""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "role": user.role.value,
        "isActive": user.is_active,
        "lastLogin": user.last_login.isoformat() if user.last_login else None,
    }


def find_by_identifier(session: Session, identifier: str) -> Optional[User]:
    """Match the identifier against email OR username, case-folded."""
    key = (identifier or "").strip().lower()
    if not key:
        return None
    with storage_guard(session, "looking up a user"):
        stmt = select(User).where(or_(User.email == key, User.username == key))
        return session.exec(stmt).first()


def create_user(
    session: Session,
    *,
    name: str,
    username: str,
    email: str,
    password: str,
    role: Union[Role, str] = Role.user,
) -> User:
    """
    Validate, hash and store a new user.
    Raises ValidationError on bad input and ConflictError on a taken username/email.
    """
    try:
        data = UserCreate(
            name=name, username=username, email=email, password=password, role=role
        )
    except PydanticValidationError as ex:
        raise validation_error_from(ex) from None  # input echo may contain the password

    with storage_guard(session, "checking for duplicate users"):
        clash = session.exec(
            select(User).where(
                or_(User.email == data.email, User.username == data.username)
            )
        ).first()
    if clash is not None:
        field = "email" if clash.email == data.email else "username"
        raise ConflictError(f"A user with that {field} already exists", field=field)

    user = User(
        name=data.name,
        username=data.username,
        email=data.email,
        hashed_password=hash_password(data.password),
        role=data.role,
    )
    with storage_guard(session, "creating a user"):
        session.add(user)
        session.commit()
        session.refresh(user)
    logger.info("Created user %s (%s)", user.username, user.role.value)
    return user


def verify_credentials(session: Session, identifier: str, password: str) -> Dict[str, Any]:
    """
    Check identifier + password. Unknown user or bad password -> AuthError,
    right password on a deactivated account -> Forbidden.
    """
    user = find_by_identifier(session, identifier)
    if user is None or not verify_password(password, user.hashed_password):
        raise AuthError("Invalid identifier or password")
    if not user.is_active:
        raise Forbidden("Your account has been deactivated")
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "role": user.role.value,
    }


def record_last_login(session: Session, user_id: str) -> None:
    """Stamp last_login with now. Unknown ids are ignored."""
    with storage_guard(session, "recording last login"):
        user = session.get(User, user_id)
        if user is None:
            return
        user.last_login = utcnow()
        user.updated_at = user.last_login
        session.add(user)
        session.commit()


def ensure_admin(
    session: Session, *, name: str, username: str, email: str, password: str
) -> Optional[User]:
    """Create the bootstrap admin unless that username/email already exists."""
    if find_by_identifier(session, username) or find_by_identifier(session, email):
        return None
    return create_user(
        session,
        name=name,
        username=username,
        email=email,
        password=password,
        role=Role.admin,
    )
