"""Tests for the connection registry."""
from relay.chat.registry import ConnectionKey, ConnectionRegistry
from relay.chat.schemas import User


def test_register_and_snapshot(socket_factory):
    registry = ConnectionRegistry()
    alice = User(id="u1", display_name="Alice")
    socket = socket_factory()

    connection = registry.register(alice, "room1", socket)

    assert connection.key == ConnectionKey("u1", "room1")
    assert connection.socket is socket
    assert connection.conversation_id == "room1"
    snapshot = registry.snapshot()
    assert snapshot.count == 1
    assert snapshot.connections == [connection]


def test_unregister_is_idempotent(socket_factory):
    registry = ConnectionRegistry()
    alice = User(id="u1", display_name="Alice")
    registry.register(alice, "room1", socket_factory())

    assert registry.unregister(alice, "room1") is not None
    assert registry.unregister(alice, "room1") is None
    assert len(registry) == 0


def test_duplicate_registration_overwrites(socket_factory):
    registry = ConnectionRegistry()
    alice = User(id="u1", display_name="Alice")
    first, second = socket_factory(), socket_factory()

    registry.register(alice, "room1", first)
    registry.register(alice, "room1", second)

    assert len(registry) == 1
    assert registry.get("u1", "room1").socket is second


def test_same_user_in_two_conversations(socket_factory):
    registry = ConnectionRegistry()
    alice = User(id="u1", display_name="Alice")
    registry.register(alice, "room1", socket_factory())
    registry.register(alice, "room2", socket_factory())

    assert len(registry) == 2
    registry.unregister(alice, "room1")
    assert ConnectionKey("u1", "room2") in registry


def test_ids_containing_separators_do_not_collide(socket_factory):
    registry = ConnectionRegistry()
    registry.register(User(id="a-b", display_name="X"), "c", socket_factory())
    registry.register(User(id="a", display_name="Y"), "b-c", socket_factory())

    assert len(registry) == 2
    assert registry.get("a-b", "c").user.display_name == "X"
    assert registry.get("a", "b-c").user.display_name == "Y"


def test_snapshot_is_a_copy(socket_factory):
    registry = ConnectionRegistry()
    alice = User(id="u1", display_name="Alice")
    registry.register(alice, "room1", socket_factory())

    snapshot = registry.snapshot()
    registry.unregister(alice, "room1")

    assert snapshot.count == 1
    assert len(snapshot.connections) == 1
    assert registry.snapshot().count == 0
