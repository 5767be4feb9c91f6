"""
Shared test fixtures and configuration.
"""

import pytest
import os
import uuid
from datetime import datetime, timezone

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/growthyari_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

from growthyari.models import SessionBooking  # noqa: E402
from growthyari.storage import InMemoryStorage  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def add_user(storage):
    """Factory inserting a user row directly into the store."""
    async def _add(name: str = "Test User", **profile):
        row = {
            "id": str(uuid.uuid4()),
            "name": name,
            "email": f"{uuid.uuid4().hex[:8]}@example.com",
            "hashed_password": "not-a-real-hash",
            "avatar": None,
            "bio": None,
            "profession": None,
            "expertise": [],
            "rating": 4.5,
            "review_count": 12,
            "is_verified": False,
            "location": None,
        }
        row.update(profile)
        return await storage.insert("users", row)
    return _add


def make_booking(expert_id: str, **overrides) -> SessionBooking:
    data = {
        "expert_id": expert_id,
        "title": "Career chat",
        "description": "Talk about moving into product management",
        "duration": 30,
        "price": 0,
        "scheduled_at": datetime(2026, 11, 2, 10, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return SessionBooking(**data)
