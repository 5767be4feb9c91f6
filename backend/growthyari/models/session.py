"""
Session Models - Booking payloads and status enums for expert sessions.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """Lifecycle status of a booked session."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_SESSION_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})


class SessionRole(str, Enum):
    """Which side of a session a listing is filtered on."""
    EXPERT = "expert"
    CLIENT = "client"
    ALL = "all"


class SessionBooking(BaseModel):
    """Booking request sent by the client."""
    expert_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    duration: int = Field(..., gt=0, le=24 * 60)  # minutes
    price: float = Field(default=0, ge=0)  # 0 for free sessions
    scheduled_at: datetime


class SessionStatusUpdate(BaseModel):
    """Requested status transition. Validated against SessionStatus by the manager."""
    status: str


class SessionNotesUpdate(BaseModel):
    """Replacement notes for a session."""
    notes: str = Field(..., max_length=10000)
