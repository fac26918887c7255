"""Minimal IRC transport.

Only what the chat core needs: registration, keep-alive, joining the
configured channel on welcome, and PRIVMSG in both directions. Reconnection
is left to the process supervisor.
"""

from __future__ import annotations

import asyncio
import ssl
from dataclasses import dataclass, field

from ..core.config import IRCConfig
from ..core.message_handler import IncomingMessage
from ..core.provider import BaseProvider, SendResult

_CTCP_MARKER = "\x01"


@dataclass
class IRCLine:
    """A parsed IRC protocol line.

    Attributes:
        command: Command or numeric reply, upper-cased
        params: Middle parameters followed by the trailing parameter
        prefix: Source prefix without the leading ``:``
    """

    command: str
    params: list[str] = field(default_factory=list)
    prefix: str | None = None

    @property
    def nick(self) -> str | None:
        """Nickname part of the prefix (``nick!user@host``)."""
        if not self.prefix:
            return None
        return self.prefix.split("!", 1)[0]


def parse_line(line: str) -> IRCLine | None:
    """Parse one IRC line; returns None for blank input.

    Example:
        ```python
        parsed = parse_line(":alice!a@host PRIVMSG #chan :Nisaba: hi")
        assert parsed.nick == "alice"
        assert parsed.params == ["#chan", "Nisaba: hi"]
        ```
    """
    line = line.rstrip("\r\n")
    if not line.strip():
        return None

    if line.startswith("@"):
        # IRCv3 message tags
        _, _, line = line.partition(" ")

    prefix = None
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")

    trailing = None
    if " :" in line:
        line, _, trailing = line.partition(" :")
    elif line.startswith(":"):
        trailing = line[1:]
        line = ""

    parts = line.split()
    if not parts:
        return None
    params = parts[1:]
    if trailing is not None:
        params.append(trailing)
    return IRCLine(command=parts[0].upper(), params=params, prefix=prefix)


class IRCProvider(BaseProvider):
    """IRC client delivering channel and private PRIVMSGs.

    Example:
        ```python
        provider = IRCProvider(config.irc)
        provider.on_message(controller.handle_incoming)
        async with provider:
            await provider.run()
        ```
    """

    provider_type = "irc"
    nickname: str

    def __init__(self, config: IRCConfig, name: str = "default") -> None:
        super().__init__(name)
        self.config = config
        self.nickname = config.nickname
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._write_lock = asyncio.Lock()

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self.config.use_ssl:
            return None
        context = ssl.create_default_context()
        if not self.config.validate_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    async def connect(self) -> None:
        """Open the connection and register with the server."""
        if self._connected:
            return
        context = self._ssl_context()
        self.logger.info(
            "Connecting to %s:%d (tls=%s)", self.config.server, self.config.port, bool(context)
        )
        self._reader, self._writer = await asyncio.open_connection(
            self.config.server,
            self.config.port,
            ssl=context,
            server_hostname=self.config.server if context else None,
        )
        self._connected = True

        if self.config.password:
            await self.send_raw(f"PASS {self.config.password}")
        await self.send_raw(f"NICK {self.nickname}")
        realname = self.config.realname or self.config.nickname
        await self.send_raw(f"USER {self.config.nickname} 0 * :{realname}")

    async def disconnect(self) -> None:
        """Send QUIT and close the connection."""
        if self._writer is None:
            return
        try:
            if self._connected:
                await self.send_raw("QUIT :Goodbye")
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            self.logger.debug("Error while disconnecting: %s", exc)
        finally:
            self._writer = None
            self._reader = None
            self._connected = False
            self.logger.info("Disconnected from %s", self.config.server)

    async def run(self) -> None:
        """Read lines until the server closes the connection."""
        if self._reader is None:
            raise RuntimeError("IRC provider is not connected")

        while True:
            raw = await self._reader.readline()
            if not raw:
                self.logger.warning("Connection closed by server")
                self._connected = False
                return
            line = raw.decode("utf-8", errors="replace")
            self.logger.debug("<< %s", line.rstrip())
            parsed = parse_line(line)
            if parsed is not None:
                await self.handle_line(parsed)

    async def handle_line(self, line: IRCLine) -> None:
        """React to one parsed server line."""
        if line.command == "PING":
            token = line.params[-1] if line.params else ""
            await self.send_raw(f"PONG :{token}")
        elif line.command == "001":
            if line.params:
                self.nickname = line.params[0]
            await self.send_raw(f"JOIN {self.config.channel}")
            self.logger.info("Registered as %s, joining %s", self.nickname, self.config.channel)
        elif line.command == "433":
            self.nickname = f"{self.nickname}_"
            self.logger.warning("Nickname in use, retrying as %s", self.nickname)
            await self.send_raw(f"NICK {self.nickname}")
        elif line.command == "NICK" and line.params and self._is_self(line.nick):
            self.nickname = line.params[-1]
            self.logger.info("Nickname changed to %s", self.nickname)
        elif line.command == "PRIVMSG" and len(line.params) >= 2:
            message = self._to_message(line)
            if message is not None:
                await self.dispatch(message)

    def _is_self(self, nick: str | None) -> bool:
        return nick is not None and nick.lower() == self.nickname.lower()

    def _to_message(self, line: IRCLine) -> IncomingMessage | None:
        target, text = line.params[0], line.params[-1]
        sender = line.nick
        if not sender or text.startswith(_CTCP_MARKER):
            return None
        is_private = self._is_self(target)
        return IncomingMessage(
            sender_name=sender,
            content=text,
            target=target,
            chat_type="private" if is_private else "channel",
            platform=self.provider_type,
            raw=line,
        )

    async def send_raw(self, line: str) -> None:
        if self._writer is None:
            raise RuntimeError("IRC provider is not connected")
        async with self._write_lock:
            self._writer.write(f"{line}\r\n".encode())
            await self._writer.drain()
        self.logger.debug(">> %s", line)

    async def send_text(self, text: str, target: str) -> SendResult:
        """Send a PRIVMSG; line breaks are flattened to spaces."""
        text = " ".join(text.splitlines())
        try:
            await self.send_raw(f"PRIVMSG {target} :{text}")
        except (RuntimeError, ConnectionError, OSError) as exc:
            return SendResult.fail(str(exc), target=target)
        return SendResult.ok(target)
