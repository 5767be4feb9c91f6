"""
Sessions API endpoints - booking and managing expert sessions.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..core import SessionLifecycleManager
from ..core.exceptions import store_errors
from ..models import SessionBooking, SessionNotesUpdate, SessionRole, SessionStatus, SessionStatusUpdate
from ..utils.auth import get_current_user_id
from .deps import get_session_manager
from .responses import ok

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("")
async def list_sessions(
    role: SessionRole = Query(SessionRole.ALL, alias="type"),
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    manager: SessionLifecycleManager = Depends(get_session_manager)
):
    """
    List the caller's sessions.

    Args:
        role: "expert", "client" or "all" (default)
        session_status: Optional status filter

    Returns:
        Envelope with ``sessions``, newest scheduled first
    """
    with store_errors("Failed to fetch sessions"):
        sessions = await manager.list_for_user(user_id, role, session_status)
    return ok({"sessions": sessions})


@router.post("/book", status_code=status.HTTP_201_CREATED)
async def book_session(
    booking: SessionBooking,
    user_id: str = Depends(get_current_user_id),
    manager: SessionLifecycleManager = Depends(get_session_manager)
):
    """
    Book a session with an expert; the caller becomes the client.

    Returns:
        Envelope with the pending ``session``
    """
    with store_errors("Failed to book session"):
        session = await manager.create(booking, user_id)
    return ok({"session": session})


@router.get("/experts/{expert_id}/slots")
async def get_expert_slots(expert_id: str, date: Optional[str] = None):
    """
    Available time slots for an expert.

    Placeholder data: there is no availability model yet, so every expert
    gets the same fixed day.
    """
    slots = [
        {"id": str(uuid.uuid4()), "time": "09:00", "available": True, "price": 0},
        {"id": str(uuid.uuid4()), "time": "10:00", "available": True, "price": 75},
        {"id": str(uuid.uuid4()), "time": "11:00", "available": False, "price": 75},
        {"id": str(uuid.uuid4()), "time": "14:00", "available": True, "price": 50},
        {"id": str(uuid.uuid4()), "time": "15:00", "available": True, "price": 50},
        {"id": str(uuid.uuid4()), "time": "16:00", "available": True, "price": 0},
    ]
    return ok({"slots": slots})


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: SessionLifecycleManager = Depends(get_session_manager)
):
    """Session details with both parties' profiles. Parties only."""
    with store_errors("Failed to fetch session"):
        session = await manager.get(session_id, user_id)
    return ok({"session": session})


@router.patch("/{session_id}/status")
async def update_session_status(
    session_id: str,
    payload: SessionStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    manager: SessionLifecycleManager = Depends(get_session_manager)
):
    """
    Change a session's status.

    Only the expert can confirm; either party can complete or cancel.
    """
    with store_errors("Failed to update session"):
        session = await manager.update_status(session_id, payload.status, user_id)
    return ok({"session": session})


@router.patch("/{session_id}/notes")
async def update_session_notes(
    session_id: str,
    payload: SessionNotesUpdate,
    user_id: str = Depends(get_current_user_id),
    manager: SessionLifecycleManager = Depends(get_session_manager)
):
    """Replace the session notes. Either party, any status."""
    with store_errors("Failed to update session notes"):
        await manager.update_notes(session_id, payload.notes, user_id)
    return ok(message="Session notes updated successfully")
