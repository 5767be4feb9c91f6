"""Storage module - provides the table store interface and implementations."""

from .interface import StorageInterface, StorageError, DuplicateRowError, ConflictingRowError
from .local_storage import LocalStorage
from .memory_storage import InMemoryStorage
from .factory import create_storage
from .user_storage import UserStorage, USERS_TABLE

__all__ = [
    'StorageInterface', 'StorageError', 'DuplicateRowError', 'ConflictingRowError',
    'LocalStorage', 'InMemoryStorage', 'create_storage',
    'UserStorage', 'USERS_TABLE'
]
