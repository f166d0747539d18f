"""Registry of live WebSocket connections.

Every connection is keyed by ``(user_id, conversation_id)``. The key is a
tuple, so ids containing separators such as ``-`` can never collide.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from .schemas import User

logger = logging.getLogger(__name__)


class ConnectionKey(NamedTuple):
    user_id: str
    conversation_id: str


@dataclass(frozen=True)
class Connection:
    """One live socket bound to exactly one (user, conversation) pair.

    Attributes:
        key: Registry key for this connection.
        socket: Transport handle (a Starlette ``WebSocket`` in production).
        user: The user that owns the socket.
        send_lock: Serializes writes to the socket, so the initial
            connection_established/history pair goes out before any broadcast.
    """
    key: ConnectionKey
    socket: Any
    user: User
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, compare=False, repr=False)

    @property
    def conversation_id(self) -> str:
        return self.key.conversation_id


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time copy of the registry contents."""
    count: int
    connections: List[Connection]


class ConnectionRegistry:
    """Tracks every live socket.

    Not thread-safe; all access happens on the event loop. Mutations are
    visible to the next ``snapshot()`` immediately.
    """

    def __init__(self) -> None:
        self._connections: Dict[ConnectionKey, Connection] = {}

    def register(self, user: User, conversation_id: str, socket: Any) -> Connection:
        """Insert (or overwrite) the connection for ``(user.id, conversation_id)``.

        The caller is responsible for rejecting empty conversation ids.
        """
        key = ConnectionKey(user.id, conversation_id)
        connection = Connection(key=key, socket=socket, user=user)
        self._connections[key] = connection
        logger.debug(f"[Registry] Registered {key}; {len(self._connections)} live")
        return connection

    def unregister(self, user: User, conversation_id: str) -> Optional[Connection]:
        """Remove the connection if present. Returns the removed entry."""
        removed = self._connections.pop(ConnectionKey(user.id, conversation_id), None)
        if removed is not None:
            logger.debug(
                f"[Registry] Unregistered {removed.key}; {len(self._connections)} live"
            )
        return removed

    def get(self, user_id: str, conversation_id: str) -> Optional[Connection]:
        return self._connections.get(ConnectionKey(user_id, conversation_id))

    def snapshot(self) -> RegistrySnapshot:
        connections = list(self._connections.values())
        return RegistrySnapshot(count=len(connections), connections=connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, key: object) -> bool:
        return key in self._connections
