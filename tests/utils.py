"""
Test utilities and helper functions for HAL testing.
"""
from typing import List

from src.core.dispatcher import OutboundQueue
from src.models.message import ProtocolMessage, PRIVMSG


DEFAULT_ORIGIN = "dave!dave@discovery.example.com"


def privmsg(body: str, target: str = "#bots", origin: str = DEFAULT_ORIGIN) -> ProtocolMessage:
    """Build an inbound user-text message."""
    return ProtocolMessage(command=PRIVMSG, params=(target, body), origin=origin)


async def run_handler(handler, message: ProtocolMessage, sink: OutboundQueue) -> List[ProtocolMessage]:
    """Run one handler action directly and return what it queued."""
    await handler.handle(message, sink)
    return sink.drain_nowait()
