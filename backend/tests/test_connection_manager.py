"""
Unit tests for ConnectionWorkflowManager.
"""

import asyncio

import pytest

from growthyari.core import ConnectionWorkflowManager
from growthyari.core.connection_manager import connection_id_for
from growthyari.core.exceptions import (
    ForbiddenError, InvalidInputError, InvalidOperationError, InvalidStateError, NotFoundError
)
from growthyari.models import RequestDirection
from growthyari.storage import InMemoryStorage, LocalStorage, StorageError


@pytest.fixture
def manager(storage):
    return ConnectionWorkflowManager(storage)


@pytest.fixture
async def users(add_user):
    alice = await add_user("Alice", profession="Designer", expertise=["ux"])
    bob = await add_user("Bob", profession="Engineer")
    carol = await add_user("Carol")
    return alice["id"], bob["id"], carol["id"]


class TestSendRequest:

    @pytest.mark.asyncio
    async def test_creates_pending_request(self, manager, users):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob, "hi")
        assert request["status"] == "pending"
        assert request["sender_id"] == alice
        assert request["receiver_id"] == bob
        assert request["message"] == "hi"
        assert request["receiver"]["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_message_is_optional(self, manager, users):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        assert request["message"] is None

    @pytest.mark.asyncio
    async def test_cannot_request_yourself(self, manager, users, storage):
        alice, _, _ = users
        with pytest.raises(InvalidOperationError):
            await manager.send_request(alice, alice, "me")
        assert await storage.select("connection_requests") == []

    @pytest.mark.asyncio
    async def test_unknown_receiver(self, manager, users):
        alice, _, _ = users
        with pytest.raises(NotFoundError):
            await manager.send_request(alice, "ghost")

    @pytest.mark.asyncio
    async def test_duplicate_pending_rejected(self, manager, users):
        alice, bob, _ = users
        await manager.send_request(alice, bob)
        with pytest.raises(InvalidStateError, match="already sent"):
            await manager.send_request(alice, bob)

    @pytest.mark.asyncio
    async def test_reverse_pending_rejected(self, manager, users):
        alice, bob, _ = users
        await manager.send_request(alice, bob)
        with pytest.raises(InvalidStateError, match="already sent you"):
            await manager.send_request(bob, alice)

    @pytest.mark.asyncio
    async def test_already_connected_rejected(self, manager, users):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        await manager.respond(request["id"], bob, "accept")
        with pytest.raises(InvalidStateError, match="Already connected"):
            await manager.send_request(bob, alice)

    @pytest.mark.asyncio
    async def test_can_ask_again_after_decline(self, manager, users):
        alice, bob, _ = users
        first = await manager.send_request(alice, bob)
        await manager.respond(first["id"], bob, "decline")
        second = await manager.send_request(alice, bob)
        assert second["id"] != first["id"]


class TestRespond:

    @pytest.mark.asyncio
    async def test_accept_creates_single_connection(self, manager, users, storage):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob, "hi")

        assert await manager.respond(request["id"], bob, "accept") == "accepted"

        stored = await storage.get("connection_requests", request["id"])
        assert stored["status"] == "accepted"
        connections = await storage.select("connections")
        assert len(connections) == 1
        assert connections[0]["user1_id"] == alice
        assert connections[0]["user2_id"] == bob
        assert connections[0]["connected_at"]

    @pytest.mark.asyncio
    async def test_second_accept_fails_without_duplicate(self, manager, users, storage):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        await manager.respond(request["id"], bob, "accept")

        with pytest.raises(InvalidStateError, match="already accepted"):
            await manager.respond(request["id"], bob, "accept")
        assert len(await storage.select("connections")) == 1

    @pytest.mark.asyncio
    async def test_decline_creates_no_connection(self, manager, users, storage):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)

        assert await manager.respond(request["id"], bob, "decline") == "declined"
        assert (await storage.get("connection_requests", request["id"]))["status"] == "declined"
        assert await manager.list_connections(alice) == []
        assert await manager.list_connections(bob) == []

    @pytest.mark.asyncio
    async def test_cannot_accept_after_decline(self, manager, users):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        await manager.respond(request["id"], bob, "decline")
        with pytest.raises(InvalidStateError, match="already declined"):
            await manager.respond(request["id"], bob, "accept")

    @pytest.mark.asyncio
    async def test_only_receiver_may_respond(self, manager, users):
        alice, bob, carol = users
        request = await manager.send_request(alice, bob)
        for intruder in (alice, carol):
            with pytest.raises(ForbiddenError):
                await manager.respond(request["id"], intruder, "accept")

    @pytest.mark.asyncio
    async def test_unknown_request(self, manager, users):
        _, bob, _ = users
        with pytest.raises(NotFoundError):
            await manager.respond("missing", bob, "accept")

    @pytest.mark.asyncio
    async def test_unknown_action(self, manager, users, storage):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        with pytest.raises(InvalidInputError):
            await manager.respond(request["id"], bob, "maybe")
        assert (await storage.get("connection_requests", request["id"]))["status"] == "pending"


class FlakyConnectionStorage(InMemoryStorage):
    """Store whose first connection insert fails."""

    def __init__(self):
        super().__init__()
        self.failures_left = 1

    async def insert(self, table, row, unless_any_of=None):
        if table == "connections" and self.failures_left:
            self.failures_left -= 1
            raise StorageError("connection write timed out")
        return await super().insert(table, row, unless_any_of)


class TestAcceptRetry:

    @pytest.mark.asyncio
    async def test_retried_accept_converges(self):
        storage = FlakyConnectionStorage()
        await storage.insert("users", {"id": "a", "name": "A"})
        await storage.insert("users", {"id": "b", "name": "B"})
        manager = ConnectionWorkflowManager(storage)
        request = await manager.send_request("a", "b")

        with pytest.raises(StorageError):
            await manager.respond(request["id"], "b", "accept")
        assert (await storage.get("connection_requests", request["id"]))["status"] == "accepted"
        assert await storage.select("connections") == []

        # Retry completes the missing connection instead of reporting a conflict
        assert await manager.respond(request["id"], "b", "accept") == "accepted"
        connections = await storage.select("connections")
        assert [c["id"] for c in connections] == [connection_id_for("a", "b")]

        # Once complete, further accepts are rejected and nothing is duplicated
        with pytest.raises(InvalidStateError):
            await manager.respond(request["id"], "b", "accept")
        assert len(await storage.select("connections")) == 1


class TestConcurrentRequests:
    """Requests racing each other over the file-backed store."""

    @pytest.fixture
    async def local_manager(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        await storage.insert("users", {"id": "a", "name": "A"})
        await storage.insert("users", {"id": "b", "name": "B"})
        return ConnectionWorkflowManager(storage), storage

    @pytest.mark.asyncio
    async def test_simultaneous_requests_leave_one_pending(self, local_manager):
        manager, storage = local_manager

        results = await asyncio.gather(
            manager.send_request("a", "b"),
            manager.send_request("b", "a"),
            manager.send_request("a", "b"),
            return_exceptions=True,
        )

        created = [r for r in results if isinstance(r, dict)]
        rejected = [r for r in results if isinstance(r, InvalidStateError)]
        assert len(created) == 1
        assert len(rejected) == 2
        pending = await storage.select("connection_requests", filters={"status": "pending"})
        assert [r["id"] for r in pending] == [created[0]["id"]]

    @pytest.mark.asyncio
    async def test_pair_never_gets_two_connections(self, local_manager):
        manager, storage = local_manager
        first = await manager.send_request("a", "b")
        # A reverse request that slipped in before the pair was connected
        await storage.insert("connection_requests", {
            "id": "late", "sender_id": "b", "receiver_id": "a", "message": None,
            "status": "pending", "created_at": first["created_at"], "updated_at": first["created_at"],
        })

        results = await asyncio.gather(
            manager.respond(first["id"], "b", "accept"),
            manager.respond("late", "a", "accept"),
        )

        assert results == ["accepted", "accepted"]
        connections = await storage.select("connections")
        assert [c["id"] for c in connections] == [connection_id_for("b", "a")]


class TestListing:

    @pytest.mark.asyncio
    async def test_connections_visible_to_both_parties(self, manager, users):
        alice, bob, _ = users
        request = await manager.send_request(alice, bob)
        await manager.respond(request["id"], bob, "accept")

        for me, other_name in ((alice, "Bob"), (bob, "Alice")):
            connections = await manager.list_connections(me)
            assert len(connections) == 1
            assert connections[0]["user"]["name"] == other_name
            assert connections[0]["user1_id"] == alice

    @pytest.mark.asyncio
    async def test_list_requests_by_direction(self, manager, users):
        alice, bob, carol = users
        to_bob = await manager.send_request(alice, bob)
        from_carol = await manager.send_request(carol, alice)

        sent = await manager.list_requests(alice, RequestDirection.SENT)
        assert [r["id"] for r in sent] == [to_bob["id"]]
        assert sent[0]["receiver"]["name"] == "Bob"
        assert "sender" not in sent[0]

        received = await manager.list_requests(alice, "received")
        assert [r["id"] for r in received] == [from_carol["id"]]
        assert received[0]["sender"]["name"] == "Carol"

    @pytest.mark.asyncio
    async def test_list_requests_status_filter(self, manager, users):
        alice, bob, carol = users
        declined = await manager.send_request(bob, alice)
        pending = await manager.send_request(carol, alice)
        await manager.respond(declined["id"], alice, "decline")

        still_pending = await manager.list_requests(alice, "received", "pending")
        assert [r["id"] for r in still_pending] == [pending["id"]]

    @pytest.mark.asyncio
    async def test_list_requests_unknown_direction(self, manager, users):
        alice, _, _ = users
        with pytest.raises(InvalidInputError):
            await manager.list_requests(alice, "outbox")
