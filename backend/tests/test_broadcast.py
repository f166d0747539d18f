"""Tests for conversation fan-out."""
import pytest

from relay.chat.broadcast import broadcast, is_open
from relay.chat.registry import ConnectionRegistry
from relay.chat.schemas import User

ALICE = User(id="u-alice", display_name="Alice")
BOB = User(id="u-bob", display_name="Bob")
CAROL = User(id="u-carol", display_name="Carol")
DAVE = User(id="u-dave", display_name="Dave")


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.mark.asyncio
async def test_reaches_others_in_conversation_only(registry, socket_factory):
    alice, bob, carol, dave = (socket_factory() for _ in range(4))
    registry.register(ALICE, "room1", alice)
    registry.register(BOB, "room1", bob)
    registry.register(CAROL, "room1", carol)
    registry.register(DAVE, "room2", dave)

    delivered = await broadcast(registry, "room1", {"type": "ping"}, exclude_user_id=ALICE.id)

    assert delivered == 2
    assert alice.sent == []
    assert bob.sent == [{"type": "ping"}]
    assert carol.sent == [{"type": "ping"}]
    assert dave.sent == []


@pytest.mark.asyncio
async def test_without_exclusion_reaches_everyone(registry, socket_factory):
    alice, bob = socket_factory(), socket_factory()
    registry.register(ALICE, "room1", alice)
    registry.register(BOB, "room1", bob)

    assert await broadcast(registry, "room1", {"type": "ping"}) == 2


@pytest.mark.asyncio
async def test_failing_peer_does_not_block_others(registry, socket_factory):
    broken, bob = socket_factory(fail=True), socket_factory()
    registry.register(CAROL, "room1", broken)
    registry.register(BOB, "room1", bob)

    delivered = await broadcast(registry, "room1", {"type": "ping"}, exclude_user_id=ALICE.id)

    assert delivered == 1
    assert bob.sent == [{"type": "ping"}]
    # Failed peers stay registered until they close
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_closed_sockets_are_skipped(registry, socket_factory):
    closed, bob = socket_factory(open=False), socket_factory()
    registry.register(CAROL, "room1", closed)
    registry.register(BOB, "room1", bob)

    delivered = await broadcast(registry, "room1", {"type": "ping"})

    assert delivered == 1
    assert closed.sent == []


@pytest.mark.asyncio
async def test_empty_conversation_delivers_nothing(registry, socket_factory):
    registry.register(ALICE, "room1", socket_factory())
    assert await broadcast(registry, "room2", {"type": "ping"}) == 0


def test_is_open_requires_both_states(socket_factory):
    assert is_open(socket_factory())
    assert not is_open(socket_factory(open=False))
    assert not is_open(object())
