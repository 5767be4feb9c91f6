"""
Connection Models - Connection requests between users.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ConnectionRequestStatus(str, Enum):
    """Status of a directional connection request."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class RespondAction(str, Enum):
    """Receiver's answer to a request."""
    ACCEPT = "accept"
    DECLINE = "decline"


class RequestDirection(str, Enum):
    """Which requests to list for the caller."""
    SENT = "sent"
    RECEIVED = "received"


class ConnectionRequestCreate(BaseModel):
    """Payload for sending a connection request."""
    user_id: str = Field(..., min_length=1)  # receiver
    message: Optional[str] = Field(default=None, max_length=500)


class ConnectionRespond(BaseModel):
    """Payload for answering a request. Validated against RespondAction by the manager."""
    action: str
