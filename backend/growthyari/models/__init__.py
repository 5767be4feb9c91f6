"""Models module."""

from .user import UserCreate, UserLogin, ProfileUpdate, TokenData
from .session import (
    SessionStatus, SessionRole, SessionBooking, SessionStatusUpdate, SessionNotesUpdate,
    TERMINAL_SESSION_STATUSES
)
from .connection import (
    ConnectionRequestStatus, RespondAction, RequestDirection,
    ConnectionRequestCreate, ConnectionRespond
)

__all__ = [
    'UserCreate', 'UserLogin', 'ProfileUpdate', 'TokenData',
    'SessionStatus', 'SessionRole', 'SessionBooking', 'SessionStatusUpdate',
    'SessionNotesUpdate', 'TERMINAL_SESSION_STATUSES',
    'ConnectionRequestStatus', 'RespondAction', 'RequestDirection',
    'ConnectionRequestCreate', 'ConnectionRespond'
]
