"""Main bot class that wires configuration, session, controller and transport."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path

from .chat.controller import ChatController
from .chat.session import ChatSession
from .core import BotConfig, get_logger, setup_logging
from .core.provider import BaseProvider
from .providers.irc import IRCProvider

logger = get_logger("bot")


class NisabaBot:
    """Chat-relay bot for one IRC channel.

    Example:
        ```python
        from nisaba_bot import NisabaBot

        bot = NisabaBot.from_config("config/config.yaml")
        bot.start()   # runs until the connection closes or SIGINT/SIGTERM
        ```
    """

    def __init__(self, config: BotConfig, provider: BaseProvider | None = None) -> None:
        """Initialize the bot.

        Args:
            config: Bot configuration
            provider: Transport override; defaults to an IRC provider

        Raises:
            ConfigurationError: If a mandatory side file cannot be read
        """
        if config is None:
            raise ValueError("Bot configuration must not be None")

        self.config = config
        setup_logging(config.logging, debug=config.debug)

        self.session = ChatSession.from_config(config)
        self.provider = provider or IRCProvider(config.irc)
        self.controller = ChatController(self.session, self.provider)
        self.provider.on_message(self.controller.handle_incoming)
        self._stop = asyncio.Event()

        logger.info(
            "Bot initialized: nickname=%s, channel=%s, api=%s (%s)",
            config.irc.nickname,
            config.irc.channel,
            config.api.url,
            config.api.mode,
        )

    @classmethod
    def from_config(cls, path: str | Path) -> NisabaBot:
        """Create a bot from a YAML or JSON configuration file."""
        return cls(BotConfig.from_file(path))

    def start(self) -> None:
        """Run the bot in a fresh event loop until it stops."""
        try:
            asyncio.run(self.run())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received; shutting down")

    def stop(self) -> None:
        """Ask a running bot to shut down."""
        self._stop.set()

    async def run(self) -> None:
        """Connect, process events until disconnected or stopped, then clean up."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.stop)

        try:
            await self.provider.connect()
            reader = asyncio.create_task(self.provider.run())
            stopper = asyncio.create_task(self._stop.wait())
            done, _ = await asyncio.wait({reader, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if reader in done and reader.exception() is not None:
                logger.error("Transport stopped with error: %s", reader.exception())
            for task in (reader, stopper):
                task.cancel()
        finally:
            await self.controller.shutdown()
            await self.provider.disconnect()
            await self.session.aclose()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
            logger.info("Bot stopped")
