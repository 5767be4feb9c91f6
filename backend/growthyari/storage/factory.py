"""
Storage Factory - Creates the configured table store.
"""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .memory_storage import InMemoryStorage


def create_storage(storage_type: str = "local", local_storage_path: str = "./data") -> StorageInterface:
    """
    Create a table store based on configuration.

    Args:
        storage_type: "local" (JSON files on disk) or "memory"
        local_storage_path: Base directory for the local store

    Returns:
        StorageInterface instance
    """
    if storage_type == "local":
        return LocalStorage(local_storage_path)

    elif storage_type == "memory":
        return InMemoryStorage()

    else:
        raise ValueError(f"Unsupported storage type: {storage_type}")
