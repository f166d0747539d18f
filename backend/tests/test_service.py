"""Tests for ChatRelay join/leave bookkeeping."""
import pytest

from relay.chat.registry import ConnectionKey
from relay.chat.schemas import User

ALICE = User(id="u-alice", display_name="Alice")
BOB = User(id="u-bob", display_name="Bob")


def test_join_registers_connection_and_participant(relay, socket_factory):
    connection = relay.join(ALICE, "room1", socket_factory())

    assert connection.key == ConnectionKey(ALICE.id, "room1")
    assert ConnectionKey(ALICE.id, "room1") in relay.registry
    assert relay.store.get("room1").participants == {ALICE.id: ALICE}


def test_participant_shares_connection_user(relay, socket_factory):
    connection = relay.join(ALICE, "room1", socket_factory())
    assert relay.store.get("room1").participants[ALICE.id] is connection.user


def test_leave_removes_both_sides(relay, socket_factory):
    relay.join(ALICE, "room1", socket_factory())
    relay.join(BOB, "room1", socket_factory())

    relay.leave(ALICE, "room1")

    assert len(relay.registry) == 1
    assert list(relay.store.get("room1").participants) == [BOB.id]


def test_last_leave_prunes_conversation(relay, socket_factory):
    relay.join(ALICE, "room1", socket_factory())
    relay.history("room1")

    relay.leave(ALICE, "room1")

    assert len(relay.store) == 0
    assert len(relay.registry) == 0


def test_leave_twice_is_harmless(relay, socket_factory):
    relay.join(ALICE, "room1", socket_factory())
    relay.join(BOB, "room1", socket_factory())

    relay.leave(ALICE, "room1")
    relay.leave(ALICE, "room1")

    assert len(relay.registry) == 1
    assert "room1" in relay.store


def test_rejoin_after_everyone_left_starts_fresh(relay, socket_factory):
    relay.join(ALICE, "room1", socket_factory())
    first_welcome = relay.history("room1")[0]
    relay.leave(ALICE, "room1")

    relay.join(BOB, "room1", socket_factory())
    assert relay.store.get("room1").message_count == 0
    assert relay.history("room1")[0] is not first_welcome


@pytest.mark.asyncio
async def test_broadcast_after_leave_skips_departed_user(relay, socket_factory):
    alice, bob = socket_factory(), socket_factory()
    relay.join(ALICE, "room1", alice)
    relay.join(BOB, "room1", bob)

    relay.leave(BOB, "room1")
    delivered = await relay.broadcast("room1", {"type": "ping"}, exclude_user_id=ALICE.id)

    assert delivered == 0
    assert bob.sent == []
