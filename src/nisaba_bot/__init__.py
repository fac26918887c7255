"""Nisaba Bot.

An IRC chat-relay bot that forwards addressed messages to a language-model
completion endpoint and relays the replies back to the channel:
- Durable JSON conversation transcript with indexed archives
- Named generation-parameter and configuration profiles
- Single-flight request handling with chunked, paced replies

Example:
    ```python
    from nisaba_bot import NisabaBot

    bot = NisabaBot.from_config("config/config.yaml")
    bot.start()
    ```
"""

from importlib.metadata import PackageNotFoundError, version

from .bot import NisabaBot
from .core import BotConfig, get_logger, setup_logging

__all__ = [
    "__version__",
    "NisabaBot",
    "BotConfig",
    "get_logger",
    "setup_logging",
]

try:  # pragma: no cover - best-effort during development
    __version__ = version("nisaba-bot")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
