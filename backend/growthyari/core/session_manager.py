"""
Session Lifecycle Manager - booking and status workflow for expert sessions.

Status machine::

    pending -> confirmed -> completed
    pending | confirmed -> cancelled

Only the expert may confirm. Either party may complete or cancel. Status
writes are conditional on the status that was checked, so two parties
updating at once cannot silently overwrite each other.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from ..models import SessionBooking, SessionRole, SessionStatus, TERMINAL_SESSION_STATUSES
from ..storage import StorageInterface, USERS_TABLE
from .access import (
    BRIEF_PROFILE, CLIENT_PROFILE, FULL_PROFILE,
    ensure_party, load_users, parse_enum, public_profile, require_row, to_utc_iso, utc_now
)
from .exceptions import ForbiddenError, InvalidOperationError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "sessions"

SUMMARY_FIELDS = (
    "id", "expert_id", "client_id", "title", "description", "duration", "price",
    "scheduled_at", "status", "meeting_link"
)
DETAIL_FIELDS = SUMMARY_FIELDS + ("notes", "created_at", "updated_at")


class SessionLifecycleManager:
    """
    Creates sessions and applies guarded status and notes updates.
    """

    def __init__(
        self,
        storage: StorageInterface,
        meeting_link_base: str = "https://meet.google.com",
        strict_terminal_states: bool = True,
        max_status_attempts: int = 3
    ):
        """
        Initialize the manager.

        Args:
            storage: Table store holding sessions and users
            meeting_link_base: Prefix for generated meeting links
            strict_terminal_states: Reject transitions out of completed/cancelled
            max_status_attempts: Conditional-write attempts before giving up on a
                session that keeps changing underneath us
        """
        self.storage = storage
        self.meeting_link_base = meeting_link_base.rstrip("/")
        self.strict_terminal_states = strict_terminal_states
        self.max_status_attempts = max(1, max_status_attempts)

    def _meeting_link(self, session_id: str) -> str:
        # Placeholder link; unique only as far as the id prefix is
        return f"{self.meeting_link_base}/{session_id[:8]}"

    async def _shape(
        self,
        rows: List[Dict[str, Any]],
        fields: tuple = SUMMARY_FIELDS,
        expert_fields: tuple = BRIEF_PROFILE,
        client_fields: tuple = BRIEF_PROFILE
    ) -> List[Dict[str, Any]]:
        """Project session rows and join both parties' public profiles."""
        user_ids = {r["expert_id"] for r in rows} | {r["client_id"] for r in rows}
        users = await load_users(self.storage, user_ids)

        shaped = []
        for row in rows:
            item = {field: row.get(field) for field in fields}
            item["expert"] = public_profile(users.get(row["expert_id"]), expert_fields)
            item["client"] = public_profile(users.get(row["client_id"]), client_fields)
            shaped.append(item)
        return shaped

    async def create(self, booking: SessionBooking, requester_id: str) -> Dict[str, Any]:
        """
        Book a session with an expert. The requester becomes the client.

        Args:
            booking: Validated booking payload
            requester_id: Authenticated user making the booking

        Returns:
            Dict: The new session with both parties' profiles

        Raises:
            NotFoundError: If the expert does not exist
            InvalidOperationError: If the requester is the expert
        """
        expert = await self.storage.get(USERS_TABLE, booking.expert_id)
        if expert is None:
            raise NotFoundError("Expert not found")

        if booking.expert_id == requester_id:
            raise InvalidOperationError("Cannot book session with yourself")

        session_id = str(uuid.uuid4())
        now = utc_now()
        row = {
            "id": session_id,
            "expert_id": booking.expert_id,
            "client_id": requester_id,
            "title": booking.title,
            "description": booking.description,
            "duration": booking.duration,
            "price": booking.price,
            "scheduled_at": to_utc_iso(booking.scheduled_at),
            "status": SessionStatus.PENDING.value,
            "meeting_link": self._meeting_link(session_id),
            "notes": None,
            "created_at": now,
            "updated_at": now,
        }
        await self.storage.insert(SESSIONS_TABLE, row)

        logger.info(
            f"Session booked: {session_id}",
            extra={"extra_fields": {
                "session_id": session_id,
                "expert_id": booking.expert_id,
                "client_id": requester_id,
                "price": booking.price,
            }}
        )
        # TODO: notify the expert and create a payment intent for paid sessions
        # once notification and payment services exist.

        return (await self._shape([row]))[0]

    async def get(self, session_id: str, requester_id: str) -> Dict[str, Any]:
        """
        Get a session the requester is a party to, with full profiles.

        Raises:
            NotFoundError: If the session does not exist
            ForbiddenError: If the requester is neither expert nor client
        """
        session = require_row(
            await self.storage.get(SESSIONS_TABLE, session_id), "Session not found"
        )
        ensure_party(
            requester_id,
            (session["expert_id"], session["client_id"]),
            "Not authorized to view this session"
        )
        shaped = await self._shape(
            [session], DETAIL_FIELDS, expert_fields=FULL_PROFILE, client_fields=CLIENT_PROFILE
        )
        return shaped[0]

    async def list_for_user(
        self,
        requester_id: str,
        role: SessionRole = SessionRole.ALL,
        status: Optional[SessionStatus] = None
    ) -> List[Dict[str, Any]]:
        """
        List the requester's sessions, newest scheduled first.

        Args:
            requester_id: Authenticated user
            role: Restrict to sessions where the user is the expert, the client, or either
            status: Optional status filter
        """
        role = parse_enum(SessionRole, role, "Invalid session type")
        filters = {}
        if status is not None:
            filters["status"] = parse_enum(SessionStatus, status, "Invalid status").value

        if role is SessionRole.EXPERT:
            rows = await self.storage.select(
                SESSIONS_TABLE, filters={**filters, "expert_id": requester_id},
                order_by="scheduled_at", descending=True
            )
        elif role is SessionRole.CLIENT:
            rows = await self.storage.select(
                SESSIONS_TABLE, filters={**filters, "client_id": requester_id},
                order_by="scheduled_at", descending=True
            )
        else:
            rows = await self.storage.select(
                SESSIONS_TABLE, filters=filters,
                any_of=[{"expert_id": requester_id}, {"client_id": requester_id}],
                order_by="scheduled_at", descending=True
            )

        return await self._shape(rows)

    async def update_status(self, session_id: str, new_status: Any, requester_id: str) -> Dict[str, Any]:
        """
        Move a session to a new status.

        Args:
            session_id: Session to update
            new_status: Target status (string or SessionStatus)
            requester_id: Authenticated user

        Returns:
            Dict: The updated session

        Raises:
            InvalidInputError: If new_status is not a known status
            NotFoundError: If the session does not exist
            ForbiddenError: If the requester is not a party, or a non-expert confirms
            InvalidStateError: If the session is in a terminal state, or keeps
                changing concurrently
        """
        target = parse_enum(SessionStatus, new_status, "Invalid status")

        for attempt in range(1, self.max_status_attempts + 1):
            session = require_row(
                await self.storage.get(SESSIONS_TABLE, session_id), "Session not found"
            )
            is_expert = session["expert_id"] == requester_id
            ensure_party(
                requester_id,
                (session["expert_id"], session["client_id"]),
                "Not authorized to update this session"
            )
            if target is SessionStatus.CONFIRMED and not is_expert:
                raise ForbiddenError("Only expert can confirm sessions")

            current = SessionStatus(session["status"])
            if self.strict_terminal_states and current in TERMINAL_SESSION_STATUSES:
                raise InvalidStateError(f"Session is already {current.value}")

            updated = await self.storage.update(
                SESSIONS_TABLE,
                session_id,
                {"status": target.value, "updated_at": utc_now()},
                expected={"status": current.value}
            )
            if updated is not None:
                logger.info(
                    f"Session {session_id} status {current.value} -> {target.value}",
                    extra={"extra_fields": {
                        "session_id": session_id,
                        "from_status": current.value,
                        "to_status": target.value,
                        "requester_id": requester_id,
                    }}
                )
                return (await self._shape([updated]))[0]

            logger.warning(
                f"Session {session_id} changed during status update (attempt {attempt})"
            )

        raise InvalidStateError("Session was modified concurrently, please retry")

    async def update_notes(self, session_id: str, notes: str, requester_id: str) -> None:
        """
        Replace a session's notes. Allowed in every status.

        Raises:
            NotFoundError: If the session does not exist
            ForbiddenError: If the requester is not a party
        """
        session = require_row(
            await self.storage.get(SESSIONS_TABLE, session_id), "Session not found"
        )
        ensure_party(
            requester_id,
            (session["expert_id"], session["client_id"]),
            "Not authorized to update this session"
        )

        updated = await self.storage.update(
            SESSIONS_TABLE, session_id, {"notes": notes, "updated_at": utc_now()}
        )
        if updated is None:
            raise NotFoundError("Session not found")
