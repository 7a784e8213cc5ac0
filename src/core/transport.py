"""
IRC Transport for HAL

Thin asyncio stream adapter between the server connection and the
dispatcher: decodes inbound lines into ProtocolMessage values and writes
outbound messages drained from the OutboundQueue. Reconnection is not
handled; when the connection closes the inbound iterator simply ends.
"""

import asyncio
from typing import AsyncIterator, Optional

from ..models.message import (
    MalformedMessageError, ProtocolMessage, NICK, USER, JOIN
)
from .dispatcher import OutboundQueue
from .logging import get_logger


ENCODING = "utf-8"


class TransportError(Exception):
    """Transport connection errors"""
    pass


class IRCTransport:
    """
    Line-oriented client connection to an IRC server
    """

    def __init__(self, host: str, port: int = 6667, connect_timeout: float = 30.0):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.logger = get_logger('transport')

        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

        self.stats = {
            'lines_received': 0,
            'lines_sent': 0,
            'lines_malformed': 0
        }

    @property
    def connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            TransportError: If the server cannot be reached
        """
        self.logger.info(f"Connecting to {self.host}:{self.port}")
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"Cannot connect to {self.host}:{self.port}: {e}") from e

        self.logger.info(f"Connected to {self.host}:{self.port}")

    async def register(self, sink: OutboundQueue, nick: str, channel: str) -> None:
        """Queue the nick, user and join lines"""
        await sink.put(ProtocolMessage(command=NICK, params=(nick,)))
        await sink.put(ProtocolMessage(command=USER, params=(nick, "0", "*", nick)))
        await sink.put(ProtocolMessage(command=JOIN, params=(channel,)))

    async def messages(self) -> AsyncIterator[ProtocolMessage]:
        """Yield inbound messages until the server closes the connection"""
        if self.reader is None:
            raise TransportError("Transport is not connected")

        while True:
            try:
                raw = await self.reader.readline()
            except (OSError, asyncio.IncompleteReadError) as e:
                self.logger.error(f"Read failed: {e}")
                return

            if not raw:
                self.logger.info("Connection closed by server")
                return

            line = raw.decode(ENCODING, errors='replace').rstrip('\r\n')
            if not line:
                continue

            self.stats['lines_received'] += 1
            self.logger.debug(f"<< {line}")

            try:
                yield ProtocolMessage.parse(line)
            except MalformedMessageError as e:
                self.stats['lines_malformed'] += 1
                self.logger.warning(f"Skipping unparseable line: {e}")

    async def send(self, message: ProtocolMessage) -> None:
        """Write one message as a complete line"""
        if self.writer is None:
            raise TransportError("Transport is not connected")

        line = message.to_line()
        self.writer.write(f"{line}\r\n".encode(ENCODING))
        await self.writer.drain()
        self.stats['lines_sent'] += 1
        self.logger.debug(f">> {line}")

    async def run_writer(self, sink: OutboundQueue) -> None:
        """Drain the outbound queue to the server; the single consumer of sink"""
        while True:
            message = await sink.get()
            try:
                await self.send(message)
            except (OSError, TransportError) as e:
                self.logger.error(f"Failed to send {message.command}: {e}")
            finally:
                sink.task_done()

    async def close(self) -> None:
        """Close the connection"""
        if self.writer is None:
            return

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            self.logger.debug(f"Error while closing connection: {e}")
        self.logger.info("Connection closed")
