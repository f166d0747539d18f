"""Best-effort fan-out of events to the live participants of a conversation.

Performance Notes:
    - Sends run concurrently with asyncio.gather()
    - Each broadcast scans the whole registry; conversation ids live in the
      registry key, so the filter is a tuple comparison per connection
    - A failed send is logged and counted as undelivered; only an explicit
      close/error event removes a connection from the registry
"""
import asyncio
import logging
from typing import Any, Optional

from starlette.websockets import WebSocketState

from .registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


def is_open(socket: Any) -> bool:
    """Check whether both ends of a WebSocket are still connected."""
    return (
        getattr(socket, "application_state", None) == WebSocketState.CONNECTED
        and getattr(socket, "client_state", None) == WebSocketState.CONNECTED
    )


async def _safe_send(connection: Connection, payload: dict) -> bool:
    """Send one event. Returns False instead of raising on failure."""
    try:
        async with connection.send_lock:
            await connection.socket.send_json(payload)
        return True
    except Exception as e:
        logger.warning(
            f"[Broadcast] Failed to send {payload.get('type')} to "
            f"{connection.user.display_name} ({connection.user.id}): {e}"
        )
        return False


async def broadcast(
    registry: ConnectionRegistry,
    conversation_id: str,
    payload: dict,
    exclude_user_id: Optional[str] = None,
) -> int:
    """Deliver ``payload`` to every other open connection in a conversation.

    Args:
        registry: Live connections to scan.
        conversation_id: Only connections in this conversation are targeted.
        payload: JSON-serializable event.
        exclude_user_id: Usually the sender, who never gets its own event.

    Returns:
        Number of connections the event was delivered to.
    """
    targets = []
    for connection in registry.snapshot().connections:
        key = connection.key
        if key.conversation_id != conversation_id or key.user_id == exclude_user_id:
            continue
        if not is_open(connection.socket):
            logger.debug(
                f"[Broadcast] Skipping {connection.user.display_name}: connection not open"
            )
            continue
        targets.append(connection)

    if not targets:
        return 0

    results = await asyncio.gather(
        *[_safe_send(conn, payload) for conn in targets],
        return_exceptions=True
    )
    delivered = sum(1 for result in results if result is True)

    logger.debug(
        f"[Broadcast] {payload.get('type')} delivered to {delivered}/{len(targets)} "
        f"connections in conversation {conversation_id}"
    )
    return delivered
