"""
FastAPI dependencies wiring the table store into the workflow managers.
"""

from fastapi import Depends, Request

from ..config import settings
from ..core import SessionLifecycleManager, ConnectionWorkflowManager
from ..storage import StorageInterface, UserStorage


def get_storage(request: Request) -> StorageInterface:
    """Table store created at startup (overridable in tests)."""
    return request.app.state.storage


def get_user_storage(storage: StorageInterface = Depends(get_storage)) -> UserStorage:
    return UserStorage(storage)


def get_session_manager(storage: StorageInterface = Depends(get_storage)) -> SessionLifecycleManager:
    return SessionLifecycleManager(
        storage,
        meeting_link_base=settings.meeting_link_base,
        strict_terminal_states=settings.session_strict_terminal_states,
        max_status_attempts=settings.status_update_max_attempts,
    )


def get_connection_manager(storage: StorageInterface = Depends(get_storage)) -> ConnectionWorkflowManager:
    return ConnectionWorkflowManager(storage)
