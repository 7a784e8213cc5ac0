"""
Data models for HAL

Contains the protocol message structure shared by the transport,
the dispatcher and the handlers.
"""

from .message import (
    ProtocolMessage, MalformedMessageError, is_channel,
    PING, PONG, PRIVMSG, NICK, USER, JOIN
)

__all__ = [
    'ProtocolMessage', 'MalformedMessageError', 'is_channel',
    'PING', 'PONG', 'PRIVMSG', 'NICK', 'USER', 'JOIN'
]
