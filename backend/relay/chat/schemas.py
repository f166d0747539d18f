"""Data models and wire protocol for the chat relay.

Inbound frames are decoded into a closed set of variants:

    - ChatMessageFrame: {"type": "message", "message": str, "attachments"?: [...], "temp_id"?: str}
    - ReadFrame:        {"type": "read"}
    - TypingFrame:      {"type": "typing", "is_typing": bool}
    - UnknownFrame:     any other ``type`` value (including a missing one)

Outbound events are plain dicts with a ``type`` field, built by the
``*_event`` helpers at the bottom of this module.
"""
import json
import random
import string
import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# System sender used for the seeded welcome message
SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_NAME = "System"
WELCOME_MESSAGE_ID = "welcome_1"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def new_message_id() -> str:
    """Mint a server-side message id: ``msg_<epoch-ms>_<9 base-36 chars>``.

    Unique in practice, not cryptographically. Ids are only used for client
    correlation.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"msg_{_epoch_ms()}_{suffix}"


# =============================================================================
# Identity and messages
# =============================================================================


class User(BaseModel):
    """Ephemeral identity minted for a single connection.

    Attributes:
        id: Opaque user id, fresh for every connection.
        display_name: Name shown to other participants.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Per-connection user ID")
    display_name: str = Field(..., description="Display name shown in UI")

    @classmethod
    def mint(cls) -> "User":
        """Create a new anonymous user (``User0`` .. ``User999``)."""
        return cls(
            id=f"user_{_epoch_ms()}_{uuid.uuid4().hex[:8]}",
            display_name=f"User{random.randint(0, 999)}",
        )


class Message(BaseModel):
    """Immutable chat message stored in a conversation's history.

    Field order matches the ``message`` event sent over the wire; ``content``
    is serialized under the ``message`` key.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(default_factory=new_message_id)
    content: str = Field(..., serialization_alias="message")
    sender_id: str
    sender_name: str
    created_at: str = Field(default_factory=utc_now_iso)
    attachments: Tuple[Any, ...] = ()
    conversation_id: str
    is_read: bool = False

    @classmethod
    def welcome(cls, conversation_id: str, text: str) -> "Message":
        """Synthetic system message seeded into an empty conversation."""
        return cls(
            message_id=WELCOME_MESSAGE_ID,
            content=text,
            sender_id=SYSTEM_SENDER_ID,
            sender_name=SYSTEM_SENDER_NAME,
            conversation_id=conversation_id,
            is_read=True,
        )

    def to_event(self) -> dict:
        """Serialize as a ``message`` event."""
        return {"type": "message", **self.model_dump(mode="json", by_alias=True)}


# =============================================================================
# Inbound frames
# =============================================================================


class FrameDecodeError(ValueError):
    """Raised when an inbound frame cannot be decoded into a known shape."""


class ChatMessageFrame(BaseModel):
    """New chat message from a client.

    ``message`` is deliberately untyped here; the handler owns content
    validation so it can report the specific problem back to the sender.
    """
    type: Literal["message"] = "message"
    message: Any = None
    attachments: List[Any] = Field(default_factory=list)
    temp_id: Any = None

    @field_validator("attachments", mode="before")
    @classmethod
    def _missing_attachments_are_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ReadFrame(BaseModel):
    type: Literal["read"] = "read"


class TypingFrame(BaseModel):
    # is_typing is relayed verbatim, no coercion
    type: Literal["typing"] = "typing"
    is_typing: Any = None

    @property
    def has_flag(self) -> bool:
        """Whether the client sent ``is_typing`` at all (null counts as sent)."""
        return "is_typing" in self.model_fields_set


class UnknownFrame(BaseModel):
    type: Any = None


InboundFrame = Union[ChatMessageFrame, ReadFrame, TypingFrame, UnknownFrame]

_FRAME_TYPES = {
    "message": ChatMessageFrame,
    "read": ReadFrame,
    "typing": TypingFrame,
}


def decode_frame(raw: Union[str, bytes]) -> InboundFrame:
    """Decode one raw WebSocket frame.

    Args:
        raw: Text (or UTF-8 bytes) received from the client.

    Returns:
        The matching frame variant. Unrecognised ``type`` values decode to
        UnknownFrame rather than failing.

    Raises:
        FrameDecodeError: If the frame is not a JSON object or a known frame
            type has fields of the wrong shape.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FrameDecodeError(f"frame is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise FrameDecodeError("frame must be a JSON object")

    kind = data.get("type")
    frame_cls = _FRAME_TYPES.get(kind) if isinstance(kind, str) else None
    if frame_cls is None:
        return UnknownFrame(type=kind)

    try:
        return frame_cls.model_validate(data)
    except ValidationError as exc:
        raise FrameDecodeError(str(exc)) from exc


# =============================================================================
# Outbound events
# =============================================================================


def connection_established_event(user: User, conversation_id: str) -> dict:
    return {
        "type": "connection_established",
        "user": user.display_name,
        "conversation_id": conversation_id,
        "user_id": user.id,
    }


def history_event(conversation_id: str, messages: List[Message]) -> dict:
    return {
        "type": "history",
        "conversation_id": conversation_id,
        "messages": [msg.to_event() for msg in messages],
    }


def message_ack_event(temp_id: Any, message_id: str, conversation_id: str) -> dict:
    return {
        "type": "message_ack",
        "temp_id": temp_id,
        "message_id": message_id,
        "conversation_id": conversation_id,
        "status": "sent",
    }


def read_event(reader: User, conversation_id: str, timestamp: Optional[str] = None) -> dict:
    return {
        "type": "read",
        "reader_id": reader.id,
        "reader_name": reader.display_name,
        "conversation_id": conversation_id,
        "timestamp": timestamp or utc_now_iso(),
    }


def typing_event(
    user: User, conversation_id: str, is_typing: Any, include_flag: bool = True
) -> dict:
    """Typing signal; ``is_typing`` is left out when the client omitted it."""
    event = {
        "type": "typing",
        "user_id": user.id,
        "user_name": user.display_name,
        "conversation_id": conversation_id,
    }
    if include_flag:
        event["is_typing"] = is_typing
    return event


def error_event(error: str) -> dict:
    return {"type": "error", "error": error}
