"""In-memory conversation store.

Each conversation holds its live participants and a bounded history of the
last ``MAX_HISTORY`` messages. Conversations are created lazily on first join
and dropped as soon as their last participant leaves, taking their history
with them.
"""
import logging
from collections import deque
from typing import Deque, Dict, Iterator, List, Optional

from relay.config import DEFAULT_WELCOME_MESSAGE

from .schemas import Message, User

logger = logging.getLogger(__name__)

# Messages kept per conversation; older ones are evicted first
MAX_HISTORY = 100


class Conversation:
    """A named chat room.

    Attributes:
        id: Conversation id taken from the connection path.
        messages: Bounded FIFO of messages, oldest first.
        participants: userId -> User for everyone currently connected.
    """

    def __init__(self, conversation_id: str) -> None:
        self.id = conversation_id
        self.messages: Deque[Message] = deque(maxlen=MAX_HISTORY)
        self.participants: Dict[str, User] = {}

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def participant_names(self) -> List[str]:
        return [user.display_name for user in self.participants.values()]


class ConversationStore:
    """Owns every Conversation and the messages inside it."""

    def __init__(self, welcome_message: str = DEFAULT_WELCOME_MESSAGE) -> None:
        self._conversations: Dict[str, Conversation] = {}
        self._welcome_message = welcome_message

    def ensure(self, conversation_id: str) -> Conversation:
        """Return the conversation, creating an empty one if needed."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            conversation = Conversation(conversation_id)
            self._conversations[conversation_id] = conversation
            logger.info(f"[Store] Created conversation {conversation_id}")
        return conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def add_participant(self, conversation_id: str, user: User) -> Conversation:
        conversation = self.ensure(conversation_id)
        conversation.participants[user.id] = user
        return conversation

    def remove_participant(self, conversation_id: str, user_id: str) -> Optional[User]:
        """Remove a participant and prune the conversation once it is empty.

        Returns:
            The removed User, or None if the conversation or user was unknown.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None

        removed = conversation.participants.pop(user_id, None)
        if not conversation.participants:
            del self._conversations[conversation_id]
            logger.info(
                f"[Store] Conversation {conversation_id} is empty; "
                f"dropped {conversation.message_count} messages"
            )
        return removed

    def append_message(self, conversation_id: str, message: Message) -> bool:
        """Append to history, evicting the oldest message beyond MAX_HISTORY.

        The conversation may have been pruned while the caller was suspended;
        in that case the message is dropped.

        Returns:
            True if the message was stored.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.debug(
                f"[Store] Conversation {conversation_id} is gone; "
                f"dropping message {message.message_id}"
            )
            return False
        conversation.messages.append(message)
        return True

    def history(self, conversation_id: str) -> List[Message]:
        """Return the conversation history, oldest first.

        The first fetch of an empty conversation seeds a welcome message into
        it so later fetches return the same message. Unknown conversations get
        a transient welcome message and are not created.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return [Message.welcome(conversation_id, self._welcome_message)]

        if not conversation.messages:
            conversation.messages.append(
                Message.welcome(conversation_id, self._welcome_message)
            )
        return list(conversation.messages)

    def conversations(self) -> Iterator[Conversation]:
        return iter(list(self._conversations.values()))

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations
