"""Unified inbound message representation.

Key components:
- IncomingMessage: transport-neutral inbound message data class
- MessageCallback: signature of the coroutine a provider delivers messages to
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


@dataclass
class IncomingMessage:
    """Inbound message delivered by a transport provider.

    Attributes:
        sender_name: Nickname of the sender.
        content: Text content of the message.
        target: Where the message was sent: a channel name, or the bot's own
            nickname for private messages.
        chat_type: ``"channel"`` for channel messages, ``"private"`` otherwise.
        platform: Source transport identifier.
        timestamp: When the message was received.
        raw: Transport-specific raw line or payload.

    Example:
        ```python
        msg = IncomingMessage(
            sender_name="alice",
            content="Nisaba: what is a ziggurat?",
            target="#babylon",
        )
        assert msg.reply_target == "#babylon"
        ```
    """

    sender_name: str
    content: str
    target: str
    chat_type: Literal["channel", "private"] = "channel"
    platform: str = "irc"
    timestamp: datetime = field(default_factory=datetime.now)
    raw: Any = None

    @property
    def reply_target(self) -> str:
        """Channel to answer in, or the sender for private messages."""
        if self.chat_type == "private":
            return self.sender_name
        return self.target

    def to_dict(self) -> dict[str, Any]:
        """Convert message to a JSON-serializable dictionary."""
        return {
            "sender_name": self.sender_name,
            "content": self.content,
            "target": self.target,
            "chat_type": self.chat_type,
            "platform": self.platform,
            "timestamp": self.timestamp.isoformat(),
        }


MessageCallback = Callable[[IncomingMessage], Awaitable[None]]
