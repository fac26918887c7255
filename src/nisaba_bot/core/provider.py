"""Base provider abstraction for chat transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .logger import get_logger
from .message_handler import IncomingMessage, MessageCallback

logger = get_logger(__name__)


@dataclass
class SendResult:
    """Result of a message send operation."""

    success: bool
    target: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, target: str) -> SendResult:
        return cls(success=True, target=target)

    @classmethod
    def fail(cls, error: str, target: str | None = None) -> SendResult:
        return cls(success=False, target=target, error=error)


class BaseProvider(ABC):
    """Abstract base class for chat transports.

    A provider owns the connection lifecycle. The chat core only consumes two
    shapes from it: inbound ``IncomingMessage`` events delivered to the
    registered callback, and ``send_text(text, target)``.
    """

    provider_type: str = "base"
    # Name the transport currently answers to, for transports that have one.
    nickname: str | None = None

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self.logger = get_logger(f"provider.{self.provider_type}.{name}")
        self._connected = False
        self._callback: MessageCallback | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def on_message(self, callback: MessageCallback) -> MessageCallback:
        """Register the coroutine that receives inbound messages.

        Can be used as a decorator.
        """
        self._callback = callback
        return callback

    async def dispatch(self, message: IncomingMessage) -> None:
        """Deliver an inbound message to the registered callback."""
        if self._callback is None:
            self.logger.debug("No message callback registered, dropping message")
            return
        await self._callback(message)

    async def __aenter__(self) -> BaseProvider:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def run(self) -> None:
        """Read events until the connection closes."""

    @abstractmethod
    async def send_text(self, text: str, target: str) -> SendResult:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} type={self.provider_type}>"
