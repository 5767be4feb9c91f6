"""
Users API endpoints - professional search, public profiles and profile editing.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status, Depends

from ..core.access import ACCOUNT_PROFILE, USER_PROFILE, public_profile
from ..core.exceptions import store_errors
from ..models import ProfileUpdate
from ..storage import UserStorage
from ..utils.auth import get_current_user_id
from .deps import get_user_storage
from .responses import ok

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def search_users(
    q: Optional[str] = Query(None, max_length=100),
    profession: Optional[str] = Query(None, max_length=100),
    expertise: Optional[str] = Query(None, max_length=100),
    rating: Optional[float] = Query(None, ge=0, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    users: UserStorage = Depends(get_user_storage)
):
    """
    Find professionals by name, profession, expertise and minimum rating.

    The caller is left out of the results.

    Returns:
        Envelope with ``users`` (public profiles), alphabetical by name
    """
    with store_errors("Failed to search users"):
        found = await users.search_users(
            query=q,
            profession=profession,
            expertise=expertise,
            min_rating=rating,
            exclude_id=user_id,
            limit=limit,
            offset=(page - 1) * limit
        )
    return ok({"users": [public_profile(user, USER_PROFILE) for user in found]})


@router.put("/profile")
async def update_profile(
    profile: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    users: UserStorage = Depends(get_user_storage)
):
    """Update the caller's profile. Omitted fields are left unchanged."""
    updates = profile.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No profile fields to update")

    with store_errors("Failed to update profile"):
        user = await users.update_user(user_id, updates)

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return ok({"user": public_profile(user, ACCOUNT_PROFILE)})


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: str = Depends(get_current_user_id),
    users: UserStorage = Depends(get_user_storage)
):
    """Public profile of any user."""
    with store_errors("Failed to fetch user"):
        user = await users.get_user(user_id)

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return ok({"user": public_profile(user, USER_PROFILE)})
