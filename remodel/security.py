# remodel/security.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlmodel import Session

from remodel.config import get_settings
from remodel.db import get_session
from remodel.errors import Forbidden, Unauthenticated
from remodel.models import Role, User

logger = logging.getLogger("remodel.auth")

USER_HEADER = "x-user-id"  # caller identifier set by the session component

# Password hashing context (bcrypt, cost factor from settings)
_pwd = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)


# ------------ Password helpers ------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash for a plaintext password."""
    return _pwd.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against a stored hash."""
    try:
        return _pwd.verify(plain, hashed)
    except ValueError:
        # malformed or unknown hash format in storage
        logger.warning("Stored password hash could not be parsed")
        return False


# ------------ Authorization gate ------------


def _caller_id(request: Request) -> Optional[str]:
    raw = request.headers.get(USER_HEADER, "")
    return raw.strip() or None


def _attach(request: Request, user: User) -> User:
    request.state.user = user
    return user


def require_user(
    request: Request, session: Session = Depends(get_session)
) -> User:
    """
    Admit only requests whose x-user-id resolves to an active user.
    Usage (route signature):  user: User = Depends(require_user)
    """
    user_id = _caller_id(request)
    if user_id is None:
        raise Unauthenticated("Please log in to perform this action")
    user = session.get(User, user_id)
    if user is None:
        raise Unauthenticated("User not found")
    if not user.is_active:
        raise Forbidden("Your account has been deactivated")
    return _attach(request, user)


def require_admin(user: User = Depends(require_user)) -> User:
    """Same as require_user, plus the admin role."""
    if user.role != Role.admin:
        raise Forbidden("You do not have permission to perform this action")
    return user


def optional_user(
    request: Request, session: Session = Depends(get_session)
) -> Optional[User]:
    """Attach the caller when the header resolves to an active user; never rejects."""
    user_id = _caller_id(request)
    if user_id is None:
        return None
    user = session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return _attach(request, user)


__all__ = [
    "USER_HEADER",
    "hash_password",
    "verify_password",
    "require_user",
    "require_admin",
    "optional_user",
]
