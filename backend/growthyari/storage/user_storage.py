"""
User Storage - Access to the users table.
Profiles are owned by the identity layer; the session and connection
workflows only read them.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from .interface import StorageInterface

USERS_TABLE = "users"

# Columns a user may edit on their own profile
EDITABLE_PROFILE_FIELDS = ("name", "avatar", "bio", "profession", "expertise", "location")


class UserStorage:
    """
    Manages user rows in the table store.
    """

    def __init__(self, storage: StorageInterface):
        """
        Initialize user storage.

        Args:
            storage: StorageInterface implementation
        """
        self.storage = storage

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Get user by id.

        Args:
            user_id: User ID

        Returns:
            Optional[Dict]: User row or None if not found
        """
        return await self.storage.get(USERS_TABLE, user_id)

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            Optional[Dict]: User row or None if not found
        """
        rows = await self.storage.select(USERS_TABLE, filters={"email": email.strip().lower()})
        return rows[0] if rows else None

    async def create_user(self, name: str, email: str, hashed_password: str) -> Dict[str, Any]:
        """
        Create a new user with an empty profile.

        Args:
            name: Display name
            email: Email address
            hashed_password: bcrypt hash of the password

        Returns:
            Dict: Created user row

        Raises:
            ConflictingRowError: If the email is already registered
        """
        now = datetime.now(timezone.utc).isoformat()
        email = email.strip().lower()

        user_data = {
            "id": str(uuid.uuid4()),
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "avatar": None,
            "bio": None,
            "profession": None,
            "expertise": [],
            "rating": 0.0,
            "review_count": 0,
            "is_verified": False,
            "location": None,
            "created_at": now,
            "updated_at": now,
        }

        # Emails are unique; the check and the write are one store operation
        return await self.storage.insert(USERS_TABLE, user_data, unless_any_of=[{"email": email}])

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update editable profile fields.

        Args:
            user_id: User ID
            updates: Fields to update; anything not editable is ignored

        Returns:
            Optional[Dict]: Updated user row or None if user not found
        """
        values = {k: v for k, v in updates.items() if k in EDITABLE_PROFILE_FIELDS}
        values["updated_at"] = datetime.now(timezone.utc).isoformat()
        return await self.storage.update(USERS_TABLE, user_id, values)

    async def search_users(
        self,
        query: Optional[str] = None,
        profession: Optional[str] = None,
        expertise: Optional[str] = None,
        min_rating: Optional[float] = None,
        exclude_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        Find users by profile fields.

        Text filters are case-insensitive: ``query`` matches a substring of
        the name, profession or bio, ``profession`` a substring of the
        profession, and ``expertise`` one of the expertise tags exactly.
        Results are alphabetical by name; there is no relevance ranking.

        Args:
            query: Free text
            profession: Profession filter
            expertise: Expertise tag
            min_rating: Lowest acceptable rating
            exclude_id: User to leave out (usually the caller)
            limit: Page size
            offset: Rows to skip

        Returns:
            List[Dict]: Matching user rows
        """
        def contains(value: Optional[str], needle: str) -> bool:
            return needle in (value or "").lower()

        query = query.strip().lower() if query else None
        profession = profession.strip().lower() if profession else None
        expertise = expertise.strip().lower() if expertise else None

        matches = []
        for user in await self.storage.select(USERS_TABLE):
            if user["id"] == exclude_id:
                continue
            if query and not any(contains(user.get(f), query) for f in ("name", "profession", "bio")):
                continue
            if profession and not contains(user.get("profession"), profession):
                continue
            if expertise and expertise not in [tag.lower() for tag in user.get("expertise") or []]:
                continue
            if min_rating is not None and (user.get("rating") or 0) < min_rating:
                continue
            matches.append(user)

        matches.sort(key=lambda u: ((u.get("name") or "").lower(), u["id"]))
        return matches[offset:offset + limit]
