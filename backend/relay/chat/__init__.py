"""Real-time chat relay: connections, conversations, protocol and broadcast."""
from .registry import Connection, ConnectionKey, ConnectionRegistry
from .schemas import Message, User, decode_frame
from .service import ChatRelay
from .store import MAX_HISTORY, Conversation, ConversationStore

__all__ = [
    "ChatRelay",
    "Connection",
    "ConnectionKey",
    "ConnectionRegistry",
    "Conversation",
    "ConversationStore",
    "MAX_HISTORY",
    "Message",
    "User",
    "decode_frame",
]
