# remodel/routers/rooms.py
# Room inventory: whole-room reads and writes. Reads are open, writes admin-only.

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from remodel.db import get_session
from remodel.models import User
from remodel.schemas import RoomCreate, RoomRename, SaveRoomBody
from remodel.security import optional_user, require_admin
from remodel.services import rooms as room_store

router = APIRouter(tags=["rooms"])


@router.get("/rooms")
def list_rooms(
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    rooms = room_store.list_rooms(session)
    return {"success": True, "rooms": [room_store.room_summary(r) for r in rooms]}


@router.get("/load-room/{slug}")
def load_room(
    slug: str,
    session: Session = Depends(get_session),
    _viewer: Optional[User] = Depends(optional_user),
):
    room = room_store.get_room(session, slug)
    return {"success": True, "roomData": room_store.room_doc(room)}


@router.post("/save-room/{slug}")
def save_room(
    slug: str,
    body: SaveRoomBody,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    room = room_store.save_room(session, slug, body.room_data)
    return {
        "success": True,
        "message": f"{room.name} data saved successfully",
        "roomData": room_store.room_doc(room),
    }


@router.post("/rooms", status_code=status.HTTP_201_CREATED)
def create_room(
    body: RoomCreate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    room = room_store.create_room(session, body.slug, body.name, body.meta)
    return {"success": True, "roomData": room_store.room_doc(room)}


@router.put("/rooms/{slug}")
def rename_room(
    slug: str,
    body: RoomRename,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    room = room_store.rename_room(session, slug, body.name)
    return {"success": True, "roomData": room_store.room_doc(room)}


@router.delete("/rooms/{slug}")
def delete_room(
    slug: str,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    room_store.delete_room(session, slug)
    return {"success": True, "message": f"Room '{slug}' deleted"}
