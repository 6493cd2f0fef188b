# remodel/services/products.py
"""
Product catalog: the room items whose category is literally "Products".

Identity is positional, (room slug, index in that room's items). Any write
shifts positions, so callers re-read the list after every mutation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session

from remodel.errors import NotFound, PartialWriteError, PortalError, StorageError
from remodel.schemas import PRODUCTS_CATEGORY, LineItem, ProductIn, ProductRef, RoomData
from remodel.services import rooms as room_store

logger = logging.getLogger("remodel.products")

# keys the projection stamps on each product; stripped again before saving
PROJECTION_KEYS = ("room", "roomDisplayName", "originalIndex", "uniqueId")


def _stamp(doc: Dict[str, Any], slug: str, room_name: str, index: int) -> Dict[str, Any]:
    out = dict(doc)
    out.update(
        {
            "room": slug,
            "roomDisplayName": room_name,
            "originalIndex": index,
            "uniqueId": f"{slug}-{index}",
        }
    )
    return out


def list_products(session: Session) -> List[Dict[str, Any]]:
    """Room order first, then item order inside each room."""
    products: List[Dict[str, Any]] = []
    for room in room_store.list_rooms(session):
        for i, doc in enumerate(room.items or []):
            if doc.get("category") == PRODUCTS_CATEGORY:
                products.append(_stamp(doc, room.slug, room.name, i))
    return products


def _as_item(product: ProductIn) -> LineItem:
    doc = product.model_dump(mode="json", by_alias=True)
    for key in PROJECTION_KEYS:
        doc.pop(key, None)
    return LineItem.model_validate(doc)


def _items_of(session: Session, slug: str) -> List[LineItem]:
    return room_store.parse_items(room_store.get_room(session, slug))


def _check_index(items: List[LineItem], slug: str, index: int) -> None:
    if index < 0 or index >= len(items):
        raise NotFound(f"No item at position {index} in room '{slug}'")


def _entry(session: Session, slug: str, index: int) -> Dict[str, Any]:
    room = room_store.get_room(session, slug)
    return _stamp(room.items[index], room.slug, room.name, index)


def save_product(
    session: Session, product: ProductIn, original: Optional[ProductRef] = None
) -> Dict[str, Any]:
    """
    Create, update in place, or move a product between rooms.
    Returns the product as the projection now shows it.
    """
    item = _as_item(product)
    if original is None and product.original_index is not None:
        original = ProductRef(room=product.room, original_index=product.original_index)

    # brand new product: append to the target room
    if original is None:
        items = _items_of(session, product.room)
        items.append(item)
        room_store.save_room(session, product.room, RoomData(items=items))
        return _entry(session, product.room, len(items) - 1)

    # same room: replace in place
    if original.room == product.room:
        items = _items_of(session, product.room)
        _check_index(items, product.room, original.original_index)
        items[original.original_index] = item
        room_store.save_room(session, product.room, RoomData(items=items))
        return _entry(session, product.room, original.original_index)

    return _move_product(session, item, original, product.room)


def _move_product(
    session: Session, item: LineItem, original: ProductRef, new_slug: str
) -> Dict[str, Any]:
    """
    Two room saves, not atomic. The new room is written first so a failure
    can never make the product vanish; if removing it from the old room then
    fails, the copy in the new room is taken out again.
    """
    old_items = _items_of(session, original.room)
    _check_index(old_items, original.room, original.original_index)
    new_items = _items_of(session, new_slug)
    new_items.append(item)
    appended_at = len(new_items) - 1

    try:
        room_store.save_room(session, new_slug, RoomData(items=new_items))
    except StorageError as ex:
        raise PartialWriteError(
            "Moving the product failed before anything was saved; refresh and retry",
            detail={"newRoomSaved": False, "oldRoomSaved": False, "compensated": False},
        ) from ex

    del old_items[original.original_index]
    try:
        room_store.save_room(session, original.room, RoomData(items=old_items))
    except StorageError as ex:
        compensated = _undo_append(session, new_slug, appended_at)
        raise PartialWriteError(
            f"Product was added to '{new_slug}' but could not be removed from "
            f"'{original.room}'; refresh both rooms",
            detail={"newRoomSaved": True, "oldRoomSaved": False, "compensated": compensated},
        ) from ex

    logger.info(
        "Moved product from %s[%d] to %s[%d]",
        original.room,
        original.original_index,
        new_slug,
        appended_at,
    )
    return _entry(session, new_slug, appended_at)


def _undo_append(session: Session, slug: str, index: int) -> bool:
    try:
        items = _items_of(session, slug)
        if index < len(items):
            del items[index]
            room_store.save_room(session, slug, RoomData(items=items))
        return True
    except PortalError:
        logger.exception("Could not undo product append in room %s", slug)
        return False


def delete_product(session: Session, slug: str, index: int) -> None:
    items = _items_of(session, slug)
    _check_index(items, slug, index)
    del items[index]
    room_store.save_room(session, slug, RoomData(items=items))
