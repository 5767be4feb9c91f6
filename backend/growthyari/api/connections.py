"""
Connections API endpoints - connection requests and the caller's network.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..core import ConnectionWorkflowManager
from ..core.exceptions import store_errors
from ..models import ConnectionRequestCreate, ConnectionRequestStatus, ConnectionRespond, RequestDirection
from ..utils.auth import get_current_user_id
from .deps import get_connection_manager
from .responses import ok

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("")
async def list_connections(
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionWorkflowManager = Depends(get_connection_manager)
):
    """List the caller's connections with the other party's profile under ``user``."""
    with store_errors("Failed to fetch connections"):
        connections = await manager.list_connections(user_id)
    return ok({"connections": connections})


@router.post("/request", status_code=status.HTTP_201_CREATED)
async def send_connection_request(
    payload: ConnectionRequestCreate,
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionWorkflowManager = Depends(get_connection_manager)
):
    """
    Send a connection request to ``payload.user_id``.

    Returns:
        Envelope with the pending ``request``
    """
    with store_errors("Failed to send connection request"):
        request = await manager.send_request(user_id, payload.user_id, payload.message)
    return ok({"request": request})


@router.get("/requests")
async def list_connection_requests(
    direction: RequestDirection = Query(RequestDirection.RECEIVED, alias="type"),
    request_status: Optional[ConnectionRequestStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionWorkflowManager = Depends(get_connection_manager)
):
    """
    List requests the caller received (default) or sent.

    Args:
        direction: "received" or "sent"
        request_status: Optional status filter
    """
    with store_errors("Failed to fetch connection requests"):
        requests = await manager.list_requests(user_id, direction, request_status)
    return ok({"requests": requests})


@router.patch("/requests/{request_id}")
async def respond_to_connection_request(
    request_id: str,
    payload: ConnectionRespond,
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionWorkflowManager = Depends(get_connection_manager)
):
    """
    Accept or decline a request addressed to the caller.

    Returns:
        Envelope with the request's resulting ``status``
    """
    with store_errors("Failed to respond to connection request"):
        result = await manager.respond(request_id, user_id, payload.action)
    return ok({"status": result})
