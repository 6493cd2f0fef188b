# remodel/routers/products.py
# Product catalog = room items with category "Products".
# Positions shift after every write: clients re-read /products afterwards.

from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from remodel.db import get_session
from remodel.models import User
from remodel.schemas import SaveProductBody
from remodel.security import optional_user, require_admin
from remodel.services import products as product_store

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    return {"success": True, "products": product_store.list_products(session)}


@router.post("")
def save_product(
    body: SaveProductBody,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    product = product_store.save_product(session, body.product, body.original)
    return {"success": True, "product": product}


@router.delete("/{room}/{index}")
def delete_product(
    room: str,
    index: int,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    product_store.delete_product(session, room, index)
    return {"success": True, "message": "Product deleted"}
