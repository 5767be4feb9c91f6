"""
Workflow exceptions.

Every failure a workflow manager can report is a ``WorkflowError`` carrying
the HTTP status it maps to. The API layer renders them in the standard
response envelope.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import status

from ..storage.interface import StorageError

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Base class for business-rule and authorization failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(WorkflowError):
    """Caller is authenticated but not allowed to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidInputError(WorkflowError):
    """Malformed or out-of-enum field."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidOperationError(WorkflowError):
    """Business-rule violation such as booking or connecting with yourself."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateError(WorkflowError):
    """Action not valid for the entity's current status."""

    status_code = status.HTTP_409_CONFLICT


class StoreFailure(WorkflowError):
    """Persistence failure. The message is generic; details go to the log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    """
    Translate storage errors raised inside the block into ``StoreFailure``.

    Args:
        message: Caller-facing description, e.g. "Failed to book session"
    """
    try:
        yield
    except StorageError as e:
        logger.error(f"{message}: {e}", exc_info=True)
        raise StoreFailure(message) from e
