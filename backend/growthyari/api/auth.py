"""
Authentication API endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException, status, Depends

from ..core.access import ACCOUNT_PROFILE, public_profile
from ..core.exceptions import store_errors
from ..models import UserCreate, UserLogin
from ..storage import ConflictingRowError, UserStorage
from ..utils.auth import create_user_token, get_current_user_id, get_password_hash, verify_password
from .deps import get_user_storage
from .responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, users: UserStorage = Depends(get_user_storage)):
    """
    Register a new user.

    Returns:
        Envelope with the created ``user`` and an access ``token``

    Raises:
        HTTPException: If the email is already registered
    """
    with store_errors("Failed to register user"):
        if await users.get_user_by_email(user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User already exists with this email"
            )

        try:
            user = await users.create_user(
                name=user_data.name,
                email=user_data.email,
                hashed_password=get_password_hash(user_data.password)
            )
        except ConflictingRowError:
            # Registered concurrently since the lookup above
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User already exists with this email"
            )

    logger.info(f"User registered: {user['id']}")
    return ok({"user": public_profile(user, ACCOUNT_PROFILE), "token": create_user_token(user)})


@router.post("/login")
async def login(credentials: UserLogin, users: UserStorage = Depends(get_user_storage)):
    """
    Login and get an access token.

    Raises:
        HTTPException: If authentication fails
    """
    with store_errors("Failed to login"):
        user = await users.get_user_by_email(credentials.email)

    if not user or not verify_password(credentials.password, user["hashed_password"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return ok({"user": public_profile(user, ACCOUNT_PROFILE), "token": create_user_token(user)})


@router.get("/me")
async def get_me(
    user_id: str = Depends(get_current_user_id),
    users: UserStorage = Depends(get_user_storage)
):
    """Current user's account."""
    with store_errors("Failed to fetch user"):
        user = await users.get_user(user_id)

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return ok({"user": public_profile(user, ACCOUNT_PROFILE)})
