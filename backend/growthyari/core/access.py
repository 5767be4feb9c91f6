"""
Helpers shared by the workflow managers: input parsing, party checks,
timestamps and public-profile joins.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from ..storage import StorageInterface, USERS_TABLE
from .exceptions import ForbiddenError, InvalidInputError, NotFoundError

E = TypeVar("E", bound=Enum)

# Profile columns exposed alongside other users' records
BRIEF_PROFILE = ("id", "name", "avatar", "profession")
CLIENT_PROFILE = BRIEF_PROFILE + ("bio",)
FULL_PROFILE = CLIENT_PROFILE + ("expertise", "rating", "review_count")
USER_PROFILE = FULL_PROFILE + ("is_verified", "location", "created_at")
# What a user sees about themselves
ACCOUNT_PROFILE = USER_PROFILE + ("email", "updated_at")


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string, the format stored in rows."""
    return datetime.now(timezone.utc).isoformat()


def to_utc_iso(value: datetime) -> str:
    """Normalize a timestamp to UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_enum(enum_cls: Type[E], value: Any, error: str) -> E:
    """
    Coerce a raw value into a closed enum.

    Raises:
        InvalidInputError: If the value is not a member
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(error)


def require_row(row: Optional[Dict[str, Any]], error: str) -> Dict[str, Any]:
    """Return the row or raise NotFoundError."""
    if row is None:
        raise NotFoundError(error)
    return row


def ensure_party(user_id: str, party_ids: Iterable[str], error: str) -> None:
    """Raise ForbiddenError unless user_id is one of the parties."""
    if user_id not in set(party_ids):
        raise ForbiddenError(error)


def public_profile(user: Optional[Dict[str, Any]], fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Project a user row onto public columns; never exposes credentials."""
    if user is None:
        return None
    return {field: user.get(field) for field in fields}


async def load_users(storage: StorageInterface, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Fetch the user rows referenced by a batch of records in one call."""
    ids = [uid for uid in user_ids if uid]
    if not ids:
        return {}
    return await storage.get_many(USERS_TABLE, ids)
