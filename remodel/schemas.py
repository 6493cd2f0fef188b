# remodel/schemas.py
"""
Document shapes exchanged over the wire and stored inside JSON columns.

Field names are snake_case in Python and camelCase on the wire
(``budget_rate`` <-> ``budgetRate``). Timeline derivations keep the
snake_case keys ``overall_progress`` / ``current_phase``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from remodel.models import Role, Status, new_id, utcnow

PRODUCTS_CATEGORY = "Products"  # the one category the product catalog keys on

ALLOCATION_AMOUNT_TOLERANCE = 0.01  # one minor currency unit
ALLOCATION_PERCENT_TOLERANCE = 0.5

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
USERNAME_RE = re.compile(r"^[a-z0-9_-]+$")


def _coerce_instant(v: Any) -> Any:
    """Accept 'YYYY-MM-DD' as midnight and empty strings as missing."""
    if v == "":
        return None
    if isinstance(v, str) and _DATE_ONLY.match(v):
        return f"{v}T00:00:00"
    return v


def _aware(v: Optional[datetime]) -> Optional[datetime]:
    # naive instants are treated as UTC so start/end comparisons never mix
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_doc(self) -> Dict[str, Any]:
        """JSON-safe dict with wire (camelCase) keys, ready for a JSON column."""
        return self.model_dump(mode="json", by_alias=True)


# ---------- Shared pieces ----------


class Image(Document):
    model_config = ConfigDict(extra="allow")  # keeps legacy showImage/uploadedAt

    id: str = Field(default_factory=new_id)
    name: str = ""
    url: str = ""
    data: str = ""  # inline base64 / data URL
    is_main_image: bool = False
    size: int = Field(default=0, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    @model_validator(mode="after")
    def _has_source(self) -> "Image":
        if not self.url and not self.data:
            raise ValueError("image needs either a url or inline data")
        return self


def normalize_main_image(images: List[Image]) -> List[Image]:
    """Keep the main-image flag on the first flagged image only."""
    seen = False
    for img in images:
        if img.is_main_image:
            if seen:
                img.is_main_image = False
            seen = True
    return images


def display_image(images: List[Image]) -> Optional[Image]:
    """The flagged main image, else the first one, else None."""
    for img in images:
        if img.is_main_image:
            return img
    return images[0] if images else None


class Link(Document):
    url: str
    label: str = Field(default="", validation_alias=AliasChoices("label", "name"))


# ---------- Room inventory ----------


class Option(Document):
    """A product variant under consideration for one line item."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_id)
    name: str = ""
    price: Optional[float] = Field(default=None, ge=0)
    description: str = ""
    url: str = ""
    images: List[Image] = Field(default_factory=list)


def _rate(alias: str, legacy: str):
    return Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices(alias, legacy),
        serialization_alias=alias,
    )


class LineItem(Document):
    model_config = ConfigDict(extra="allow")  # unknown legacy fields survive a save

    description: str = ""
    category: str = "Other"
    quantity: float = Field(default=1.0, ge=0)
    unit: str = "unit"
    # budget_price / actual_price are the legacy spellings of the same fields
    budget_rate: float = _rate("budgetRate", "budget_price")
    actual_rate: float = _rate("actualRate", "actual_price")
    subtotal: float = 0.0
    status: Status = Status.pending
    favorite: bool = False
    notes: str = ""
    links: List[Link] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    product_options: List[Option] = Field(default_factory=list)
    selected_option_id: Optional[str] = ""
    selected_product_name: str = ""

    @field_validator("budget_rate", "actual_rate", "quantity", mode="before")
    @classmethod
    def _blank_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @property
    def effective_rate(self) -> float:
        return self.actual_rate if self.actual_rate > 0 else self.budget_rate

    @property
    def budget_amount(self) -> float:
        return self.quantity * self.budget_rate

    def computed_subtotal(self) -> float:
        return self.quantity * self.effective_rate

    def selected_option(self) -> Optional[Option]:
        if not self.selected_option_id:
            return None
        for opt in self.product_options:
            if opt.id == self.selected_option_id:
                return opt
        return None


class RoomData(Document):
    name: Optional[str] = None
    items: List[LineItem] = Field(default_factory=list)
    meta: Optional[Dict[str, Any]] = Field(default=None, alias="metadata")


class SaveRoomBody(Document):
    room_data: RoomData


class RoomCreate(Document):
    slug: str = Field(min_length=1, max_length=60)
    name: str = Field(min_length=1, max_length=100)
    meta: Dict[str, Any] = Field(default_factory=dict, alias="metadata")

    @field_validator("slug")
    @classmethod
    def _slug_shape(cls, v: str) -> str:
        v = v.strip().lower()
        if not USERNAME_RE.match(v):
            raise ValueError("slug can only contain lowercase letters, numbers, dashes, and underscores")
        return v


class RoomRename(Document):
    name: str = Field(min_length=1, max_length=100)


# ---------- Products ----------


class ProductIn(LineItem):
    category: str = PRODUCTS_CATEGORY
    room: str
    original_index: Optional[int] = Field(default=None, ge=0)


class ProductRef(Document):
    room: str
    original_index: int = Field(ge=0)


class SaveProductBody(Document):
    product: ProductIn
    original: Optional[ProductRef] = None


# ---------- Expenses ----------


class RoomAllocation(Document):
    room: str
    amount: float = Field(ge=0)
    percentage: float = Field(ge=0)


class ExpenseDoc(Document):
    id: str = Field(default_factory=new_id)
    description: str = "New Expense"
    category: str = "Other"
    amount: float = Field(default=0.0, ge=0)
    status: Status = Status.pending
    date: Optional[datetime] = None
    created_date: datetime = Field(default_factory=utcnow)
    completed_date: Optional[datetime] = None
    rooms: List[str] = Field(default_factory=list)
    room_allocations: List[RoomAllocation] = Field(default_factory=list)
    is_shared_expense: bool = False
    notes: str = ""

    @field_validator("date", "completed_date", mode="before")
    @classmethod
    def _instant_in(cls, v: Any) -> Any:
        return _coerce_instant(v)

    @field_validator("date", "created_date", "completed_date")
    @classmethod
    def _instant_out(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _aware(v)

    @field_validator("created_date", mode="before")
    @classmethod
    def _created_in(cls, v: Any) -> Any:
        v = _coerce_instant(v)
        return utcnow() if v is None else v

    @model_validator(mode="after")
    def _allocations_consistent(self) -> "ExpenseDoc":
        if not self.room_allocations:
            return self
        for i, alloc in enumerate(self.room_allocations):
            if alloc.room not in self.rooms:
                raise ValueError(
                    f"roomAllocations[{i}].room '{alloc.room}' is not listed in rooms"
                )
        pct = sum(a.percentage for a in self.room_allocations)
        if abs(pct - 100.0) > ALLOCATION_PERCENT_TOLERANCE:
            raise ValueError(f"allocation percentages sum to {pct:g}, expected 100")
        total = sum(a.amount for a in self.room_allocations)
        if abs(total - self.amount) > ALLOCATION_AMOUNT_TOLERANCE + 1e-9:
            raise ValueError(
                f"allocated amounts sum to {total:.2f}, expected {self.amount:.2f}"
            )
        return self

    @computed_field(alias="isGeneral")  # type: ignore[misc]
    @property
    def is_general(self) -> bool:
        return not self.rooms

    def allocation(self) -> Dict[str, float]:
        """Amount attributed to each room: explicit allocations, else an equal split."""
        if self.room_allocations:
            out: Dict[str, float] = {}
            for a in self.room_allocations:
                out[a.room] = out.get(a.room, 0.0) + a.amount
            return out
        if not self.rooms:
            return {}
        share = self.amount / len(self.rooms)
        return {room: share for room in self.rooms}


class SaveExpensesBody(Document):
    expenses: List[ExpenseDoc]


# ---------- Timeline ----------


class PhaseStatus(str, Enum):
    not_started = "Not Started"
    in_progress = "In Progress"
    completed = "Completed"
    blocked = "Blocked"


class LearningCategory(str, Enum):
    tip = "tip"
    issue = "issue"
    decision = "decision"
    note = "note"


class ReferenceType(str, Enum):
    image = "image"
    link = "link"
    document = "document"


class Learning(Document):
    id: str = Field(default_factory=new_id)
    content: str = Field(min_length=1)
    date: datetime = Field(default_factory=utcnow)
    category: LearningCategory = LearningCategory.note

    @field_validator("date", mode="before")
    @classmethod
    def _instant_in(cls, v: Any) -> Any:
        v = _coerce_instant(v)
        return utcnow() if v is None else v

    @field_validator("date")
    @classmethod
    def _instant_out(cls, v: datetime) -> datetime:
        return _aware(v)


class Reference(Document):
    id: str = Field(default_factory=new_id)
    type: ReferenceType
    name: str = Field(min_length=1)
    url: str = ""
    data: str = ""  # inline image data when type=image
    description: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)

    @field_validator("uploaded_at", mode="before")
    @classmethod
    def _instant_in(cls, v: Any) -> Any:
        v = _coerce_instant(v)
        return utcnow() if v is None else v

    @field_validator("uploaded_at")
    @classmethod
    def _instant_out(cls, v: datetime) -> datetime:
        return _aware(v)


class Subtask(Document):
    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1)
    completed: bool = False
    notes: str = ""
    learnings: List[Learning] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)


class Phase(Document):
    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1)
    description: str = ""
    status: PhaseStatus = PhaseStatus.not_started
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    order: int
    notes: str = ""
    learnings: List[Learning] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)
    subtasks: List[Subtask] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    related_rooms: List[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _instant_in(cls, v: Any) -> Any:
        return _coerce_instant(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def _instant_out(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _aware(v)


class TimelineIn(Document):
    phases: List[Phase] = Field(default_factory=list)


class SaveTimelineBody(Document):
    timeline: TimelineIn


# ---------- Users / auth ----------


class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=8)
    role: Role = Role.user

    # trimmed before the length checks run; the password is taken as typed
    @field_validator("name", "username", "email", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("username")
    @classmethod
    def _username_shape(cls, v: str) -> str:
        v = v.lower()
        if not USERNAME_RE.match(v):
            raise ValueError(
                "Username can only contain lowercase letters, numbers, dashes, and underscores"
            )
        return v

    @field_validator("email")
    @classmethod
    def _email_lower(cls, v: str) -> str:
        return v.lower()


class IdentifierBody(BaseModel):
    identifier: str = Field(min_length=1)


class VerifyBody(BaseModel):
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LastLoginBody(Document):
    user_id: str = Field(min_length=1)
