"""Inbound frame dispatch and per-type handlers.

Protocol Message Types:
    - message: Chat message → message_ack to sender (if temp_id), message to others
    - read: Read receipt → read to others
    - typing: Typing indicator → typing to others

Protocol errors (malformed frames, unknown types, bad content) are answered
with an ``error`` event on the sender's socket; the connection stays open.
"""
import logging
from typing import Optional

from .registry import Connection
from .schemas import (
    ChatMessageFrame,
    FrameDecodeError,
    Message,
    ReadFrame,
    TypingFrame,
    decode_frame,
    error_event,
    message_ack_event,
    new_message_id,
    read_event,
    typing_event,
)
from .service import ChatRelay

logger = logging.getLogger(__name__)

INVALID_FORMAT_ERROR = "Invalid message format"
CONTENT_REQUIRED_ERROR = "Message content is required and must be a string"
EMPTY_CONTENT_ERROR = "Message content cannot be empty"


class ProtocolDispatcher:
    """Routes decoded frames from one connection to the matching handler."""

    def __init__(self, relay: ChatRelay) -> None:
        self.relay = relay

    async def dispatch(self, connection: Connection, raw) -> None:
        """Decode and handle a single inbound frame.

        Args:
            connection: The connection the frame arrived on.
            raw: Frame payload as received from the transport.
        """
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as e:
            logger.warning(f"[WS] Malformed frame from {connection.user.id}: {e}")
            await self._reply(connection, error_event(INVALID_FORMAT_ERROR))
            return

        logger.debug("[WS] %s received: type=%s", connection.conversation_id, frame.type)

        if isinstance(frame, ChatMessageFrame):
            await self.handle_message(connection, frame)
        elif isinstance(frame, ReadFrame):
            await self.handle_read(connection, frame)
        elif isinstance(frame, TypingFrame):
            await self.handle_typing(connection, frame)
        else:
            logger.info(f"[WS] Unknown message type from {connection.user.id}: {frame.type!r}")
            await self._reply(connection, error_event(f"Unknown message type: {frame.type}"))

    async def handle_message(
        self, connection: Connection, frame: ChatMessageFrame
    ) -> Optional[Message]:
        """Validate, acknowledge, store and broadcast a chat message.

        The ack goes out before the message is stored or broadcast, so a
        sender always sees its message_ack ahead of any peer seeing the
        message.

        Returns:
            The stored Message, or None if validation failed.
        """
        user = connection.user
        conversation_id = connection.conversation_id

        content = frame.message
        if not isinstance(content, str):
            await self._reply(connection, error_event(CONTENT_REQUIRED_ERROR))
            return None

        content = content.strip()
        if not content:
            await self._reply(connection, error_event(EMPTY_CONTENT_ERROR))
            return None

        message_id = new_message_id()

        if frame.temp_id:
            await self._reply(
                connection,
                message_ack_event(frame.temp_id, message_id, conversation_id),
            )
            logger.debug(f"[WS] Acknowledged temp_id={frame.temp_id} as {message_id}")

        message = Message(
            message_id=message_id,
            content=content,
            sender_id=user.id,
            sender_name=user.display_name,
            attachments=frame.attachments,
            conversation_id=conversation_id,
        )
        # The ack above was a suspension point; the store re-checks that the
        # conversation still exists and drops the message otherwise.
        self.relay.store.append_message(conversation_id, message)

        delivered = await self.relay.broadcast(
            conversation_id, message.to_event(), exclude_user_id=user.id
        )
        logger.info(
            f"[WS] Message {message_id} from {user.display_name} in {conversation_id} "
            f"broadcast to {delivered} connections"
        )
        return message

    async def handle_read(self, connection: Connection, frame: ReadFrame) -> int:
        """Broadcast a read receipt for the sender to everyone else."""
        receipt = read_event(connection.user, connection.conversation_id)
        delivered = await self.relay.broadcast(
            connection.conversation_id, receipt, exclude_user_id=connection.user.id
        )
        logger.info(
            f"[WS] Read receipt from {connection.user.display_name} "
            f"broadcast to {delivered} connections"
        )
        return delivered

    async def handle_typing(self, connection: Connection, frame: TypingFrame) -> int:
        signal = typing_event(
            connection.user,
            connection.conversation_id,
            frame.is_typing,
            include_flag=frame.has_flag,
        )
        if frame.is_typing:
            logger.debug(
                f"[WS] {connection.user.display_name} is typing in {connection.conversation_id}"
            )
        return await self.relay.broadcast(
            connection.conversation_id, signal, exclude_user_id=connection.user.id
        )

    async def _reply(self, connection: Connection, payload: dict) -> None:
        async with connection.send_lock:
            await connection.socket.send_json(payload)
