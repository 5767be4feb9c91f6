"""API module."""

from .auth import router as auth_router
from .users import router as users_router
from .sessions import router as sessions_router
from .connections import router as connections_router

__all__ = ['auth_router', 'users_router', 'sessions_router', 'connections_router']
