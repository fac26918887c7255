"""Chat controller: route addressed messages to directives or the language model.

Key features:
- Block list and nickname addressing
- Single-flight availability gate around every addressed message
- Directives answered inline, queries answered by a background task
- Chunked, paced replies attributed to the asker once
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from ..core.logger import get_logger, log_exception
from ..core.message_handler import IncomingMessage
from ..core.provider import BaseProvider, SendResult
from .chunker import split_message
from .commands import DISABLED_RESPONSE, DirectiveHandler, match_address, parse_request
from .session import ChatSession

logger = get_logger("chat.controller")

ERROR_RESPONSE = "Sorry, something went wrong while handling that."


class ChatController:
    """Route inbound messages through directives and completions.

    Inbound messages are handled one at a time by the provider's read loop.
    A query acquires the session gate, sends an acknowledgement and hands
    the gate to a background task that calls the completion endpoint and
    sends the chunked reply. While the gate is held, addressed messages are
    dropped without a reply.

    Example:
        ```python
        session = ChatSession.from_config(config)
        controller = ChatController(session, provider)
        provider.on_message(controller.handle_incoming)
        await provider.run()
        ```
    """

    def __init__(self, session: ChatSession, provider: BaseProvider) -> None:
        """Initialize chat controller.

        Args:
            session: Session state shared by all handlers
            provider: Transport used to send replies
        """
        self.session = session
        self.provider = provider
        self.directives = DirectiveHandler(session)
        self._tasks: set[asyncio.Task[None]] = set()

        logger.debug(
            "ChatController initialized: nickname=%s, mode=%s, commands=%s",
            session.nickname,
            session.config.api.mode,
            session.config.chat.commands,
        )

    @property
    def address_name(self) -> str:
        """Name messages must start with: the transport's current nickname.

        Falls back to the configured nickname for transports without one.
        """
        return self.provider.nickname or self.session.nickname

    @property
    def pending(self) -> int:
        """Number of background query tasks still running."""
        return len(self._tasks)

    async def handle_incoming(self, message: IncomingMessage) -> None:
        """Main entry point for inbound messages.

        Never raises: faults are logged and answered with an error message,
        and the gate is released on every path that does not hand it to a
        background task.
        """
        session = self.session

        if session.is_blocked(message.sender_name):
            logger.debug("Ignoring blocked sender %s", message.sender_name)
            return

        remainder = match_address(message.content, self.address_name)
        if remainder is None:
            return

        if not session.gate.try_acquire():
            logger.info(
                "Busy for %.1fs, dropping message from %s",
                session.gate.held_for,
                message.sender_name,
            )
            return

        with session.gate.guard() as guard:
            try:
                request = parse_request(remainder, session.config.chat.commands)

                if request.kind == "disabled":
                    await self.send_reply(message, DISABLED_RESPONSE)
                    return

                if request.kind == "directive":
                    logger.info("Directive !%s from %s", request.name, message.sender_name)
                    result = await self.directives.execute(request.name, request.argument)
                    await self.send_reply(message, result.response)
                    return

                query = request.argument
                if not query:
                    return

                logger.info("Query from %s: %s", message.sender_name, query[:100])
                acknowledgement = session.config.chat.acknowledgement
                if acknowledgement:
                    await self.send_reply(message, acknowledgement)

                task = self._spawn(self._answer(message, query))
                task.add_done_callback(self._release_gate)
                guard.detach()

            except Exception as e:
                log_exception(logger, e, "Error processing message")
                await self._send_error_response(message)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _release_gate(self, task: asyncio.Task[None]) -> None:
        """Done-callback of a query task; runs even if the task never started."""
        if task.cancelled():
            logger.info("Query task cancelled; releasing gate")
        self.session.gate.release()

    async def _answer(self, message: IncomingMessage, query: str) -> None:
        """Background body of a query; the gate is released when its task finishes."""
        session = self.session
        try:
            result = await session.client.complete(
                session.transcript,
                query,
                session.parameters,
                session.config.api.mode,
            )
            if not result.ok:
                logger.warning("Answering %s with apology: %s", message.sender_name, result.text)
            await self.send_chunked(message, result.text)
        except Exception as e:
            log_exception(logger, e, "Error answering query")
            await self._send_error_response(message)

    async def send_chunked(self, message: IncomingMessage, text: str) -> list[SendResult]:
        """Send ``text`` in paced chunks, prefixing only the first with the asker."""
        chat = self.session.config.chat
        chunks = split_message(text, chat.message_size)
        if not chunks:
            logger.warning("Nothing to send to %s", message.sender_name)
            return []

        results = []
        for i, chunk in enumerate(chunks):
            if i == 0:
                results.append(await self._send(f"{message.sender_name}: {chunk}", message))
            else:
                await asyncio.sleep(chat.delay)
                results.append(await self._send(chunk, message))

        logger.debug("Sent %d chunks to %s", len(chunks), message.reply_target)
        return results

    async def send_reply(self, message: IncomingMessage, text: str) -> SendResult | None:
        """Send a single-line reply addressed to the sender."""
        if not text or not text.strip():
            logger.warning("Attempted to send empty reply")
            return None
        return await self._send(f"{message.sender_name}: {text}", message)

    async def _send(self, text: str, message: IncomingMessage) -> SendResult:
        result = await self.provider.send_text(text, message.reply_target)
        if not result.success:
            logger.error("Send to %s failed: %s", message.reply_target, result.error)
        return result

    async def _send_error_response(self, message: IncomingMessage) -> None:
        try:
            await self.send_reply(message, ERROR_RESPONSE)
        except Exception as e:
            logger.error("Exception sending error response: %s", e, exc_info=True)

    async def wait_idle(self) -> None:
        """Wait for all background query tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background tasks and wait for them to unwind."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
