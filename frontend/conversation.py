"""In-memory conversation log for one review chat.

Lives only as long as the view that hosts it; nothing here is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4


class ConversationError(Exception):
    pass


@dataclass
class ChatMessage:
    """A single chat turn.

    Attributes:
        role: "user" or "assistant".
        content: Message text. Only an in-progress (streaming) message may grow.
        id: Opaque identifier, unique within the conversation.
        timestamp: Creation time (UTC).
        streaming: True while the assistant message is still being received.
    """
    role: Literal["user", "assistant"]
    content: str = ""
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    streaming: bool = False

    def append_text(self, text: str) -> None:
        if not self.streaming:
            raise ConversationError(f"Message {self.id} is complete and can no longer change.")
        self.content += text

    def finalize(self) -> None:
        self.streaming = False

    def to_wire(self) -> dict[str, str]:
        """Role and content only, as forwarded upstream."""
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Ordered chat log; insertion order is chronological order."""

    def __init__(self):
        self._messages: list[ChatMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def append(self, message: ChatMessage) -> None:
        """Add a message at the end.

        Raises:
            ConversationError: If it would create a second in-progress assistant message.
        """
        if message.streaming and any(m.streaming for m in self._messages):
            raise ConversationError("An assistant message is already streaming.")
        self._messages.append(message)

    def remove(self, message_id: str) -> bool:
        """Drop a message by id. Returns False if it was not in the log."""
        for i, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[i]
                return True
        return False

    def recent(self, limit: int = 10) -> list[ChatMessage]:
        """The last `limit` messages, oldest first."""
        if limit <= 0:
            return []
        return self._messages[-limit:]
