"""Chat session, directives and message routing."""

from .chunker import split_message
from .commands import DIRECTIVES, CommandResult, DirectiveHandler, match_address, parse_request
from .controller import ChatController
from .gate import AvailabilityGate, GateGuard
from .session import ChatSession

__all__ = [
    "AvailabilityGate",
    "ChatController",
    "ChatSession",
    "CommandResult",
    "DIRECTIVES",
    "DirectiveHandler",
    "GateGuard",
    "match_address",
    "parse_request",
    "split_message",
]
