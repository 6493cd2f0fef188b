# remodel/services/totals.py
"""
Project-wide figures derived on read from rooms + expenses.

Sums are accumulated as plain floats; rounding happens only when the
response payload is built.
"""

from __future__ import annotations

from typing import Any, Dict, List

from sqlmodel import Session

from remodel.models import Status
from remodel.services import expenses as expense_store
from remodel.services import rooms as room_store


def compute_totals(session: Session) -> Dict[str, float]:
    """
    totalBudget   = sum of quantity x budgetRate over every room item
    totalExpenses = effective subtotal of Completed room items
                    + amount of Completed expenses
    """
    total_budget = 0.0
    spent = 0.0
    total_items = 0
    completed_items = 0
    rooms = room_store.list_rooms(session)
    for room in rooms:
        for item in room_store.parse_items(room):
            total_items += 1
            total_budget += item.budget_amount
            if item.status == Status.completed:
                completed_items += 1
                spent += item.computed_subtotal()

    for exp in expense_store.list_expenses(session):
        if exp.status == Status.completed:
            spent += exp.amount

    return {
        "totalBudget": total_budget,
        "totalExpenses": spent,
        "totalRooms": len(rooms),
        "totalItems": total_items,
        "completedItems": completed_items,
    }


def percentage_used(total_expenses: float, total_budget: float) -> float:
    """Share of the budget already spent, as a percentage; 0 without a budget."""
    if total_budget <= 0:
        return 0.0
    return total_expenses / total_budget * 100


def totals_payload(session: Session) -> Dict[str, Any]:
    t = compute_totals(session)
    return {
        "totalBudget": round(t["totalBudget"], 2),
        "totalExpenses": round(t["totalExpenses"], 2),
        "remaining": round(t["totalBudget"] - t["totalExpenses"], 2),
        "percentageUsed": round(percentage_used(t["totalExpenses"], t["totalBudget"]), 2),
        "totalRooms": t["totalRooms"],
        "totalItems": t["totalItems"],
        "completedItems": t["completedItems"],
    }


def all_categories(session: Session) -> List[Dict[str, Any]]:
    """
    One entry per distinct category across room items and expenses.
    Room items count with their effective subtotal, expenses with their amount.
    """
    acc: Dict[str, Dict[str, Any]] = {}

    def _add(category: str, amount: float) -> None:
        entry = acc.setdefault(category, {"category": category, "count": 0, "total": 0.0})
        entry["count"] += 1
        entry["total"] += amount

    for room in room_store.list_rooms(session):
        for item in room_store.parse_items(room):
            if item.category:
                _add(item.category, item.computed_subtotal())
    for exp in expense_store.list_expenses(session):
        if exp.category:
            _add(exp.category, exp.amount)

    out = []
    for category in sorted(acc):
        entry = dict(acc[category])
        entry["total"] = round(entry["total"], 2)
        out.append(entry)
    return out
