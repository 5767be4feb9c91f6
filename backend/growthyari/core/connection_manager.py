"""
Connection Workflow Manager - directional requests and symmetric connections.

A request is answered once by its receiver. Accepting it creates a
Connection whose id is derived from the pair of users, which keeps
connection creation idempotent: the request status and the connection row
are two separate single-row writes, and a retried accept converges instead
of duplicating. A pair never gets more than one Connection, whichever of
its requests is accepted.

At most one pending request exists per pair, in either direction. The
store enforces this in the same atomic step as the insert.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from ..models import ConnectionRequestStatus, RequestDirection, RespondAction
from ..storage import StorageInterface, ConflictingRowError, DuplicateRowError, USERS_TABLE
from .access import (
    FULL_PROFILE, ensure_party, load_users, parse_enum, public_profile, require_row, utc_now
)
from .exceptions import InvalidOperationError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

REQUESTS_TABLE = "connection_requests"
CONNECTIONS_TABLE = "connections"

# Namespace for connection ids derived from user pairs
CONNECTION_ID_NAMESPACE = uuid.UUID("6b1f0d3c-52a4-4c1e-9a57-3f1f8f6b2d10")

REQUEST_FIELDS = ("id", "sender_id", "receiver_id", "message", "status", "created_at", "updated_at")
CONNECTION_FIELDS = ("id", "user1_id", "user2_id", "connected_at")


def connection_id_for(user_a: str, user_b: str) -> str:
    """Deterministic connection id for a pair of users, in either order."""
    first, second = sorted((user_a, user_b))
    return str(uuid.uuid5(CONNECTION_ID_NAMESPACE, f"{first}:{second}"))


def pending_between(user_a: str, user_b: str) -> List[Dict[str, Any]]:
    """Filter groups matching a pending request between two users, either direction."""
    pending = ConnectionRequestStatus.PENDING.value
    return [
        {"sender_id": user_a, "receiver_id": user_b, "status": pending},
        {"sender_id": user_b, "receiver_id": user_a, "status": pending},
    ]


class ConnectionWorkflowManager:
    """
    Sends, answers and lists connection requests, and lists connections.
    """

    def __init__(self, storage: StorageInterface):
        """
        Initialize the manager.

        Args:
            storage: Table store holding requests, connections and users
        """
        self.storage = storage

    async def _ensure_connection(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Create the pair's connection for an accepted request unless it already exists."""
        connection_id = connection_id_for(request["sender_id"], request["receiver_id"])
        existing = await self.storage.get(CONNECTIONS_TABLE, connection_id)
        if existing is not None:
            return existing

        row = {
            "id": connection_id,
            "request_id": request["id"],
            "user1_id": request["sender_id"],
            "user2_id": request["receiver_id"],
            "connected_at": utc_now(),
        }
        try:
            return await self.storage.insert(CONNECTIONS_TABLE, row)
        except DuplicateRowError:
            # Lost a race with a concurrent accept for the same pair; keep theirs
            return await self.storage.get(CONNECTIONS_TABLE, connection_id)

    async def send_request(
        self,
        sender_id: str,
        receiver_id: str,
        message: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send a connection request.

        Args:
            sender_id: Authenticated user sending the request
            receiver_id: User being asked to connect
            message: Optional note shown to the receiver

        Returns:
            Dict: The created request with the receiver's profile

        Raises:
            InvalidOperationError: If sender and receiver are the same user
            NotFoundError: If the receiver does not exist
            InvalidStateError: If the users are already connected or a pending
                request exists in either direction
        """
        if sender_id == receiver_id:
            raise InvalidOperationError("Cannot send connection request to yourself")

        receiver = await self.storage.get(USERS_TABLE, receiver_id)
        if receiver is None:
            raise NotFoundError("User not found")

        if await self.storage.get(CONNECTIONS_TABLE, connection_id_for(sender_id, receiver_id)):
            raise InvalidStateError("Already connected with this user")

        now = utc_now()
        row = {
            "id": str(uuid.uuid4()),
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "message": message,
            "status": ConnectionRequestStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.storage.insert(
                REQUESTS_TABLE, row, unless_any_of=pending_between(sender_id, receiver_id)
            )
        except ConflictingRowError as e:
            if e.row["sender_id"] == sender_id:
                raise InvalidStateError("Connection request already sent")
            raise InvalidStateError("This user has already sent you a connection request")

        logger.info(
            f"Connection request sent: {row['id']}",
            extra={"extra_fields": {
                "request_id": row["id"],
                "sender_id": sender_id,
                "receiver_id": receiver_id,
            }}
        )

        request = {field: row.get(field) for field in REQUEST_FIELDS}
        request["receiver"] = public_profile(receiver, FULL_PROFILE)
        return request

    async def respond(self, request_id: str, responder_id: str, action: Any) -> str:
        """
        Accept or decline a pending request.

        Args:
            request_id: Request being answered
            responder_id: Authenticated user; must be the receiver
            action: "accept" or "decline"

        Returns:
            str: The request's resulting status

        Raises:
            InvalidInputError: If the action is unknown
            NotFoundError: If the request does not exist
            ForbiddenError: If the responder is not the receiver
            InvalidStateError: If the request was already answered
        """
        action = parse_enum(RespondAction, action, "Invalid action")

        request = require_row(
            await self.storage.get(REQUESTS_TABLE, request_id), "Connection request not found"
        )
        ensure_party(responder_id, (request["receiver_id"],), "Not authorized to respond to this request")

        current = request["status"]
        if current == ConnectionRequestStatus.ACCEPTED.value and action is RespondAction.ACCEPT:
            # An earlier accept may have stopped between its two writes
            existing = await self.storage.get(
                CONNECTIONS_TABLE, connection_id_for(request["sender_id"], request["receiver_id"])
            )
            if existing is None:
                logger.warning(f"Completing connection for accepted request {request_id}")
                await self._ensure_connection(request)
                return current
        if current != ConnectionRequestStatus.PENDING.value:
            raise InvalidStateError(f"Connection request already {current}")

        target = (
            ConnectionRequestStatus.ACCEPTED if action is RespondAction.ACCEPT
            else ConnectionRequestStatus.DECLINED
        )
        updated = await self.storage.update(
            REQUESTS_TABLE,
            request_id,
            {"status": target.value, "updated_at": utc_now()},
            expected={"status": ConnectionRequestStatus.PENDING.value}
        )
        if updated is None:
            raise InvalidStateError("Connection request already answered")

        if target is ConnectionRequestStatus.ACCEPTED:
            await self._ensure_connection(updated)

        logger.info(
            f"Connection request {request_id} {target.value}",
            extra={"extra_fields": {
                "request_id": request_id,
                "status": target.value,
                "responder_id": responder_id,
            }}
        )
        return target.value

    async def list_connections(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List the user's connections, newest first, each with the other party's profile.
        """
        rows = await self.storage.select(
            CONNECTIONS_TABLE,
            any_of=[{"user1_id": user_id}, {"user2_id": user_id}],
            order_by="connected_at",
            descending=True
        )

        def other(row):
            return row["user2_id"] if row["user1_id"] == user_id else row["user1_id"]

        users = await load_users(self.storage, (other(r) for r in rows))
        connections = []
        for row in rows:
            item = {field: row.get(field) for field in CONNECTION_FIELDS}
            item["user"] = public_profile(users.get(other(row)), FULL_PROFILE)
            connections.append(item)
        return connections

    async def list_requests(
        self,
        user_id: str,
        direction: RequestDirection = RequestDirection.RECEIVED,
        status: Optional[ConnectionRequestStatus] = None
    ) -> List[Dict[str, Any]]:
        """
        List requests the user sent or received, newest first.

        Sent requests carry the ``receiver`` profile, received ones the ``sender``.
        """
        direction = parse_enum(RequestDirection, direction, "Invalid request type")
        filters = {}
        if status is not None:
            filters["status"] = parse_enum(ConnectionRequestStatus, status, "Invalid status").value

        if direction is RequestDirection.SENT:
            rows = await self.storage.select(
                REQUESTS_TABLE, filters={**filters, "sender_id": user_id},
                order_by="created_at", descending=True
            )
            counterpart_key, counterpart_col = "receiver", "receiver_id"
        else:
            rows = await self.storage.select(
                REQUESTS_TABLE, filters={**filters, "receiver_id": user_id},
                order_by="created_at", descending=True
            )
            counterpart_key, counterpart_col = "sender", "sender_id"

        users = await load_users(self.storage, (r[counterpart_col] for r in rows))
        requests = []
        for row in rows:
            item = {field: row.get(field) for field in REQUEST_FIELDS}
            item[counterpart_key] = public_profile(users.get(row[counterpart_col]), FULL_PROFILE)
            requests.append(item)
        return requests
