"""Core modules for Nisaba Bot.

This package contains the shared infrastructure:
- Configuration management
- Logging utilities
- Exception hierarchy
- Transport provider abstraction and inbound message model
"""

from .config import (
    APIConfig,
    BotConfig,
    ChatConfig,
    IRCConfig,
    LoggingConfig,
    StorageConfig,
    find_config_file,
)
from .exceptions import (
    ArchiveError,
    CompletionError,
    ConfigurationError,
    NisabaError,
    ParameterProfileError,
    ProfileError,
    TranscriptError,
)
from .logger import get_logger, setup_logging
from .message_handler import IncomingMessage, MessageCallback
from .provider import BaseProvider, SendResult

__all__ = [
    # Configuration
    "BotConfig",
    "IRCConfig",
    "APIConfig",
    "ChatConfig",
    "StorageConfig",
    "LoggingConfig",
    "find_config_file",
    # Errors
    "NisabaError",
    "ConfigurationError",
    "TranscriptError",
    "ArchiveError",
    "ParameterProfileError",
    "ProfileError",
    "CompletionError",
    # Logging
    "get_logger",
    "setup_logging",
    # Messaging
    "IncomingMessage",
    "MessageCallback",
    "BaseProvider",
    "SendResult",
]
