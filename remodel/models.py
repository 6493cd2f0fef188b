# remodel/models.py
# Tables. Embedded lists (room items, phases, allocations) are JSON columns so
# every row is one whole document, written in one go.
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel, UniqueConstraint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Role(str, Enum):
    admin = "admin"
    user = "user"


class Status(str, Enum):
    """Lifecycle shared by line items and expenses."""

    planning = "Planning"
    pending = "Pending"
    ordered = "Ordered"
    completed = "Completed"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    username: str = Field(index=True)  # always lowercased
    email: str = Field(index=True)  # always lowercased
    hashed_password: str  # never plaintext, never emitted
    role: Role = Field(default=Role.user)
    is_active: bool = Field(default=True)
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: Optional[int] = Field(default=None, primary_key=True)  # insertion order
    slug: str = Field(index=True, unique=True)
    name: str
    items: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    # free-form room metadata (floor area, notes, ...)
    meta: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Expense(SQLModel, table=True):
    """A general (cross-room) project expense; empty rooms = general overhead."""

    __tablename__ = "expenses"

    id: str = Field(default_factory=new_id, primary_key=True)
    description: str = "New Expense"
    category: str = Field(default="Other", index=True)
    amount: float = 0.0
    status: Status = Field(default=Status.pending, index=True)
    date: Optional[datetime] = None
    created_date: datetime = Field(default_factory=utcnow, index=True)
    completed_date: Optional[datetime] = None
    rooms: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    room_allocations: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    is_shared_expense: bool = False
    notes: str = ""


TIMELINE_ID = "main"  # the timeline is one named row


class Timeline(SQLModel, table=True):
    __tablename__ = "timeline"

    id: str = Field(default=TIMELINE_ID, primary_key=True)
    phases: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
