"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws/chat/{conversation_id}: Real-time chat messaging

Protocol Flow:
    1. Client connects → Server mints a user
       → Server sends: {type: "connection_established", user, conversation_id, user_id}
       → Server sends: {type: "history", conversation_id, messages: [...]}
    2. Client sends: {type: "message", message, attachments?, temp_id?}
       → Server sends sender: {type: "message_ack", temp_id, message_id, ...}
       → Server broadcasts to others: {type: "message", ...fullMessage}
    3. Client sends: {type: "read"} → others get {type: "read", reader_id, ...}
    4. Client sends: {type: "typing", is_typing} → others get {type: "typing", ...}
    5. On disconnect → connection and participant removed, empty conversation dropped
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from relay.auth import verify_token

from .dispatcher import ProtocolDispatcher
from .schemas import User, connection_established_event, history_event
from .service import ChatRelay

logger = logging.getLogger(__name__)

router = APIRouter()

# 1008 = Policy Violation
POLICY_VIOLATION = 1008


async def _receive_frame(websocket: WebSocket) -> Union[str, bytes]:
    """Wait for the next text or binary frame.

    Raises:
        WebSocketDisconnect: When the client closes the connection.
    """
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    text = message.get("text")
    if text is not None:
        return text
    return message.get("bytes") or b""


@router.websocket("/ws/chat")
@router.websocket("/ws/chat/")
async def websocket_missing_conversation(websocket: WebSocket) -> None:
    """Reject connections that do not name a conversation."""
    logger.warning("[WS] Connection attempt without a conversation id")
    await websocket.accept()
    await websocket.close(code=POLICY_VIOLATION, reason="Conversation ID required")


@router.websocket("/ws/chat/{conversation_id}")
async def websocket_chat_endpoint(
    websocket: WebSocket,
    conversation_id: str,
    token: Optional[str] = Query(None, description="Auth token (accepted, not verified)"),
) -> None:
    """WebSocket endpoint for real-time chat in a conversation.

    Handles the complete lifecycle of a single client: join, history
    delivery, the dispatch loop and cleanup on close or transport error.

    Args:
        websocket: The WebSocket connection.
        conversation_id: The conversation to join.
        token: Optional auth token from the query string.
    """
    logger.info(
        f"[WS] New connection attempt: conversation={conversation_id}, has_token={bool(token)}"
    )
    verify_token(token)

    relay: ChatRelay = websocket.app.state.relay

    await websocket.accept()
    user = User.mint()
    # join and the history snapshot happen without a suspension point, so a
    # message is either in this history or broadcast to us afterwards.
    connection = relay.join(user, conversation_id, websocket)
    history = relay.history(conversation_id)
    dispatcher = ProtocolDispatcher(relay)

    try:
        # Broadcasts to this connection wait on send_lock until both
        # initial events are out.
        async with connection.send_lock:
            await websocket.send_json(connection_established_event(user, conversation_id))
            await websocket.send_json(history_event(conversation_id, history))
        logger.info(f"[WS] Sent {len(history)} history messages to {user.id}")

        # Main message loop
        while True:
            raw = await _receive_frame(websocket)
            await dispatcher.dispatch(connection, raw)

    except WebSocketDisconnect as e:
        logger.info(
            f"[WS] {user.display_name} disconnected from {conversation_id} (code={e.code})"
        )
    except Exception:
        # Socket-level failures are handled like a close
        logger.exception(f"[WS] Transport error for {user.id} in {conversation_id}")
    finally:
        relay.leave(user, conversation_id)
