# remodel/services/rooms.py
"""
Room inventory store.

A room is saved as a whole: the submitted item list replaces the stored one.
Callers compute inserts/updates/deletes/reorders themselves and resubmit.
Concurrent writers: last write wins.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from remodel.db import storage_guard
from remodel.errors import ConflictError, NotFound, ValidationError
from remodel.models import Room, Status, utcnow
from remodel.schemas import USERNAME_RE, LineItem, RoomData, normalize_main_image

logger = logging.getLogger("remodel.rooms")


# ---------- Reads ----------


def list_rooms(session: Session) -> List[Room]:
    """All rooms in insertion order."""
    with storage_guard(session, "listing rooms"):
        return list(session.exec(select(Room).order_by(Room.id)).all())


def get_room(session: Session, slug: str) -> Room:
    with storage_guard(session, "loading a room"):
        room = session.exec(select(Room).where(Room.slug == slug)).first()
    if room is None:
        raise NotFound(f"Room '{slug}' not found")
    return room


def parse_items(room: Room) -> List[LineItem]:
    return [LineItem.model_validate(doc) for doc in room.items or []]


def room_stats(items: List[LineItem]) -> Dict[str, Any]:
    """Budget/progress figures derived from the items; never stored."""
    total = len(items)
    completed = [it for it in items if it.status == Status.completed]
    if not completed:
        status = "Not Started"
    elif len(completed) == total:
        status = "Completed"
    else:
        status = "In Progress"
    return {
        "budget": round(sum(it.budget_amount for it in items), 2),
        "actualSpent": round(sum(it.computed_subtotal() for it in completed), 2),
        "completedItems": len(completed),
        "totalItems": total,
        "progressPercent": round(len(completed) / total * 100, 1) if total else 0.0,
        "status": status,
    }


def room_doc(room: Room) -> Dict[str, Any]:
    return {
        "slug": room.slug,
        "name": room.name,
        "items": list(room.items or []),
        "metadata": dict(room.meta or {}),
    }


def room_summary(room: Room) -> Dict[str, Any]:
    out = room_doc(room)
    out.update(room_stats(parse_items(room)))
    return out


# ---------- Writes ----------


def _check_slug(slug: str) -> None:
    if not slug or len(slug) > 60 or not USERNAME_RE.match(slug):
        raise ValidationError(
            "slug can only contain lowercase letters, numbers, dashes, and underscores",
            field="slug",
        )


def prepare_items(items: List[LineItem]) -> List[Dict[str, Any]]:
    """
    Validate option selections and normalize each item for storage:
    subtotal recomputed, one main image per list, selected name cached.
    """
    docs: List[Dict[str, Any]] = []
    for i, item in enumerate(items):
        if item.selected_option_id:
            option = item.selected_option()
            if option is None:
                raise ValidationError(
                    f"items[{i}].selectedOptionId '{item.selected_option_id}' "
                    "does not match any product option of that item",
                    field=f"items[{i}].selectedOptionId",
                )
            item.selected_product_name = option.name
        item.subtotal = item.computed_subtotal()
        normalize_main_image(item.images)
        for opt in item.product_options:
            normalize_main_image(opt.images)
        docs.append(item.to_doc())
    return docs


def save_room(session: Session, slug: str, room_data: RoomData) -> Room:
    """
    Upsert a room by slug; the submitted items replace the stored list.
    Nothing is written if any item fails validation.
    """
    _check_slug(slug)
    docs = prepare_items(room_data.items)

    with storage_guard(session, "saving a room"):
        room = session.exec(select(Room).where(Room.slug == slug)).first()
        if room is None:
            room = Room(slug=slug, name=room_data.name or slug)
            logger.info("Room %s did not exist, creating it on save", slug)
        if room_data.name:
            room.name = room_data.name
        if room_data.meta is not None:
            room.meta = dict(room_data.meta)
        room.items = docs
        room.updated_at = utcnow()
        session.add(room)
        session.commit()
        session.refresh(room)
    logger.info("Saved room %s with %d item(s)", slug, len(docs))
    return room


def create_room(
    session: Session, slug: str, name: str, meta: Optional[Dict[str, Any]] = None
) -> Room:
    _check_slug(slug)
    with storage_guard(session, "checking room slug"):
        exists = session.exec(select(Room).where(Room.slug == slug)).first()
    if exists is not None:
        raise ConflictError(f"Room '{slug}' already exists", field="slug")

    room = Room(slug=slug, name=name, meta=dict(meta or {}))
    with storage_guard(session, "creating a room"):
        session.add(room)
        session.commit()
        session.refresh(room)
    return room


def rename_room(session: Session, slug: str, name: str) -> Room:
    room = get_room(session, slug)
    with storage_guard(session, "renaming a room"):
        room.name = name
        room.updated_at = utcnow()
        session.add(room)
        session.commit()
        session.refresh(room)
    return room


def delete_room(session: Session, slug: str) -> None:
    """Hard delete. Expenses that mention the slug are left untouched."""
    room = get_room(session, slug)
    with storage_guard(session, "deleting a room"):
        session.delete(room)
        session.commit()
    logger.warning("Deleted room %s", slug)
