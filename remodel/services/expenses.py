# remodel/services/expenses.py
"""
Expense store: general project expenses, optionally allocated across rooms.

Small helpers so routers stay thin:
- row <-> document conversion (validation lives on ExpenseDoc)
- whole-list save (upsert by id, delete what is missing) in one commit
- per-category / per-room summary
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Tuple

from sqlmodel import Session, select

from remodel.db import storage_guard
from remodel.errors import ConflictError, NotFound, ValidationError
from remodel.models import Expense, Status, utcnow
from remodel.schemas import ExpenseDoc, RoomAllocation

logger = logging.getLogger("remodel.expenses")


def to_doc(row: Expense) -> ExpenseDoc:
    return ExpenseDoc(
        id=row.id,
        description=row.description,
        category=row.category,
        amount=row.amount,
        status=row.status,
        date=row.date,
        created_date=row.created_date,
        completed_date=row.completed_date,
        rooms=list(row.rooms or []),
        room_allocations=[RoomAllocation.model_validate(a) for a in row.room_allocations or []],
        is_shared_expense=row.is_shared_expense,
        notes=row.notes,
    )


def _apply(row: Expense, doc: ExpenseDoc) -> Expense:
    row.description = doc.description
    row.category = doc.category
    row.amount = float(doc.amount)
    row.status = doc.status
    row.date = doc.date
    row.created_date = doc.created_date
    # stamp completion the first time an expense is saved as Completed
    if doc.status == Status.completed and doc.completed_date is None:
        row.completed_date = row.completed_date or utcnow()
    else:
        row.completed_date = doc.completed_date
    row.rooms = list(doc.rooms)
    row.room_allocations = [a.to_doc() for a in doc.room_allocations]
    row.is_shared_expense = doc.is_shared_expense
    row.notes = doc.notes
    return row


def list_expenses(session: Session) -> List[ExpenseDoc]:
    """All expenses, newest createdDate first."""
    with storage_guard(session, "listing expenses"):
        rows = session.exec(
            select(Expense).order_by(Expense.created_date.desc(), Expense.id)
        ).all()
    return [to_doc(r) for r in rows]


def get_expense(session: Session, expense_id: str) -> ExpenseDoc:
    with storage_guard(session, "loading an expense"):
        row = session.get(Expense, expense_id)
    if row is None:
        raise NotFound(f"Expense '{expense_id}' not found")
    return to_doc(row)


def save_expenses(session: Session, docs: List[ExpenseDoc]) -> Dict[str, int]:
    """
    Make the stored list equal to `docs`: upsert by id, delete the rest.
    Everything is validated first and written in a single commit.
    """
    seen: Dict[str, int] = {}
    for i, doc in enumerate(docs):
        if doc.id in seen:
            raise ValidationError(
                f"expenses[{i}].id '{doc.id}' duplicates expenses[{seen[doc.id]}]",
                field=f"expenses[{i}].id",
            )
        seen[doc.id] = i

    stats = {"created": 0, "updated": 0, "deleted": 0}
    with storage_guard(session, "saving expenses"):
        existing = {row.id: row for row in session.exec(select(Expense)).all()}
        for doc in docs:
            row = existing.get(doc.id)
            if row is None:
                row = Expense(id=doc.id)
                stats["created"] += 1
            else:
                stats["updated"] += 1
            session.add(_apply(row, doc))
        for expense_id, row in existing.items():
            if expense_id not in seen:
                session.delete(row)
                stats["deleted"] += 1
        session.commit()

    logger.info(
        "Expenses saved: %(created)d created, %(updated)d updated, %(deleted)d deleted",
        stats,
    )
    return stats


def create_expense(session: Session, doc: ExpenseDoc) -> ExpenseDoc:
    with storage_guard(session, "creating an expense"):
        if session.get(Expense, doc.id) is not None:
            raise ConflictError(f"Expense '{doc.id}' already exists", field="id")
        row = _apply(Expense(id=doc.id), doc)
        session.add(row)
        session.commit()
        session.refresh(row)
    return to_doc(row)


def upsert_expense(session: Session, expense_id: str, doc: ExpenseDoc) -> Tuple[ExpenseDoc, bool]:
    """Write one expense under `expense_id`; returns (stored, created)."""
    doc.id = expense_id
    with storage_guard(session, "saving an expense"):
        row = session.get(Expense, expense_id)
        created = row is None
        row = _apply(row or Expense(id=expense_id), doc)
        session.add(row)
        session.commit()
        session.refresh(row)
    return to_doc(row), created


def delete_expense(session: Session, expense_id: str) -> None:
    with storage_guard(session, "deleting an expense"):
        row = session.get(Expense, expense_id)
        if row is None:
            raise NotFound(f"Expense '{expense_id}' not found")
        session.delete(row)
        session.commit()


def _bucket(acc: "OrderedDict[str, Dict[str, Any]]", key: str, label: str, amount: float) -> None:
    entry = acc.setdefault(key, {label: key, "totalAmount": 0.0, "count": 0})
    entry["totalAmount"] += amount
    entry["count"] += 1


def summarize_expenses(session: Session) -> Dict[str, Any]:
    """
    Totals per category and per room. A multi-room expense contributes its
    allocated share (explicit allocations, else an equal split) to each room.
    """
    by_category: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    by_room: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    general = {"totalAmount": 0.0, "count": 0}

    for doc in list_expenses(session):
        _bucket(by_category, doc.category, "category", doc.amount)
        shares = doc.allocation()
        if not shares:
            general["totalAmount"] += doc.amount
            general["count"] += 1
        for room, share in shares.items():
            _bucket(by_room, room, "room", share)

    def _rounded(entries):
        out = []
        for e in entries:
            e = dict(e)
            e["totalAmount"] = round(e["totalAmount"], 2)
            out.append(e)
        return out

    return {
        "byCategory": _rounded(sorted(by_category.values(), key=lambda e: e["category"])),
        "byRoom": _rounded(sorted(by_room.values(), key=lambda e: e["room"])),
        "general": {"totalAmount": round(general["totalAmount"], 2), "count": general["count"]},
    }
