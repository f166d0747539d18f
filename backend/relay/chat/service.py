"""Relay service tying the connection registry and conversation store together.

A single ChatRelay is created per application (see ``relay.main``) and
stored on ``app.state.relay``; request handlers receive it from there rather
than from module globals.

Thread Safety:
    Designed for a single asyncio event loop. join() and leave() never
    await, so no other handler can observe a half-applied join or leave.
"""
import logging
from typing import List, Optional

from relay.config import DEFAULT_WELCOME_MESSAGE

from .broadcast import broadcast
from .registry import Connection, ConnectionRegistry
from .schemas import Message, User
from .store import ConversationStore

logger = logging.getLogger(__name__)


class ChatRelay:
    """Owns all relay state for one process.

    Attributes:
        registry: Live connections keyed by (user id, conversation id).
        store: Conversations, participants and bounded histories.
    """

    def __init__(self, welcome_message: str = DEFAULT_WELCOME_MESSAGE) -> None:
        self.registry = ConnectionRegistry()
        self.store = ConversationStore(welcome_message=welcome_message)

    def join(self, user: User, conversation_id: str, socket) -> Connection:
        """Register a freshly accepted socket and add its user to the conversation."""
        connection = self.registry.register(user, conversation_id, socket)
        conversation = self.store.add_participant(conversation_id, user)
        logger.info(
            f"[Relay] {user.display_name} ({user.id}) joined {conversation_id}; "
            f"participants={conversation.participant_names()}, "
            f"active connections={len(self.registry)}"
        )
        return connection

    def leave(self, user: User, conversation_id: str) -> None:
        """Deregister a socket and prune its conversation if now empty.

        Safe to call more than once for the same connection.
        """
        self.registry.unregister(user, conversation_id)
        self.store.remove_participant(conversation_id, user.id)
        logger.info(
            f"[Relay] {user.display_name} ({user.id}) left {conversation_id}; "
            f"remaining connections={len(self.registry)}"
        )

    def history(self, conversation_id: str) -> List[Message]:
        return self.store.history(conversation_id)

    async def broadcast(
        self,
        conversation_id: str,
        payload: dict,
        exclude_user_id: Optional[str] = None,
    ) -> int:
        return await broadcast(self.registry, conversation_id, payload, exclude_user_id)
