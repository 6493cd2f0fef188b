# remodel/routers/expenses.py
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from remodel.db import get_session
from remodel.models import User
from remodel.schemas import ExpenseDoc, SaveExpensesBody
from remodel.security import optional_user, require_admin
from remodel.services import expenses as expense_store

router = APIRouter(tags=["expenses"])


@router.get("/load-expenses")
def load_expenses(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    docs = expense_store.list_expenses(session)
    return {"success": True, "expenses": [d.to_doc() for d in docs]}


@router.post("/save-expenses")
def save_expenses(
    body: SaveExpensesBody,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    """Replace the whole expense list (upsert by id, delete the rest)."""
    stats = expense_store.save_expenses(session, body.expenses)
    docs = expense_store.list_expenses(session)
    return {
        "success": True,
        "message": "Expenses saved successfully",
        "stats": stats,
        "expenses": [d.to_doc() for d in docs],
    }


@router.get("/expenses-summary")
def expenses_summary(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    return {"success": True, "summary": expense_store.summarize_expenses(session)}


# ---- single-expense variants ----


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
def create_expense(
    body: ExpenseDoc,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    doc = expense_store.create_expense(session, body)
    return {"success": True, "expense": doc.to_doc()}


@router.put("/expenses/{expense_id}")
def put_expense(
    expense_id: str,
    body: ExpenseDoc,
    response: Response,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    doc, created = expense_store.upsert_expense(session, expense_id, body)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return {"success": True, "expense": doc.to_doc()}


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: str,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    expense_store.delete_expense(session, expense_id)
    return {"success": True, "message": "Expense deleted"}
