"""Core module - session and connection workflows."""

from .session_manager import SessionLifecycleManager
from .connection_manager import ConnectionWorkflowManager

__all__ = ['SessionLifecycleManager', 'ConnectionWorkflowManager']
