"""Chat transport providers."""

from .irc import IRCLine, IRCProvider, parse_line

__all__ = ["IRCLine", "IRCProvider", "parse_line"]
