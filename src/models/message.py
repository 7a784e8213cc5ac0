"""
Message data models for HAL

Defines the decoded protocol message passed from the transport to the
dispatcher and from handlers back to the transport writer.
"""

from dataclasses import dataclass
from typing import Tuple


PING = "PING"
PONG = "PONG"
PRIVMSG = "PRIVMSG"
NICK = "NICK"
USER = "USER"
JOIN = "JOIN"

CHANNEL_PREFIXES = ("#", "&")


class MalformedMessageError(ValueError):
    """Raised when a message does not decompose into the expected fields"""
    pass


def is_channel(name: str) -> bool:
    """Check if a target names a channel rather than a user"""
    return bool(name) and name[0] in CHANNEL_PREFIXES


@dataclass(frozen=True)
class ProtocolMessage:
    """One decoded protocol line"""
    command: str
    params: Tuple[str, ...] = ()
    origin: str = ""

    def __post_init__(self):
        # Lists handed in by callers are frozen into tuples
        if not isinstance(self.params, tuple):
            object.__setattr__(self, 'params', tuple(self.params))

    @classmethod
    def parse(cls, line: str) -> 'ProtocolMessage':
        """
        Parse a raw protocol line.

        Args:
            line: Line as read from the wire, with or without CRLF

        Returns:
            The decoded message

        Raises:
            MalformedMessageError: If the line holds no command
        """
        line = line.rstrip('\r\n')

        # IRCv3 message tags are not used by any handler
        if line.startswith('@'):
            _, _, line = line.partition(' ')

        origin = ""
        if line.startswith(':'):
            origin, _, line = line[1:].partition(' ')

        line = line.lstrip(' ')
        if ' :' in line:
            head, _, trailing = line.partition(' :')
            params = head.split()
            params.append(trailing)
        elif line.startswith(':'):
            raise MalformedMessageError(f"Missing command in line: {line!r}")
        else:
            params = line.split()

        if not params:
            raise MalformedMessageError("Empty protocol line")

        command = params.pop(0).upper()
        return cls(command=command, params=tuple(params), origin=origin)

    @classmethod
    def privmsg(cls, target: str, body: str) -> 'ProtocolMessage':
        """Build an outbound user-text message"""
        return cls(command=PRIVMSG, params=(target, body))

    def to_line(self) -> str:
        """Encode the message as a protocol line without the trailing CRLF"""
        parts = []
        if self.origin:
            parts.append(f":{self.origin}")
        parts.append(self.command)

        if self.params:
            *middle, last = self.params
            parts.extend(middle)
            if not last or ' ' in last or last.startswith(':'):
                parts.append(f":{last}")
            else:
                parts.append(last)

        return ' '.join(parts)

    def extract_privmsg(self) -> Tuple[str, str]:
        """
        Split a PRIVMSG into its addressing fields.

        Returns:
            Tuple of (target, body)

        Raises:
            MalformedMessageError: If this is not a well formed PRIVMSG
        """
        if self.command != PRIVMSG:
            raise MalformedMessageError(f"Not a {PRIVMSG}: {self.command}")
        if len(self.params) != 2:
            raise MalformedMessageError(
                f"{PRIVMSG} expects 2 params, got {len(self.params)}"
            )
        target, body = self.params
        return target, body

    def extract_nick(self) -> str:
        """Return the nick part of the origin"""
        nick = self.origin.split('!', 1)[0].split('@', 1)[0]
        if not nick:
            raise MalformedMessageError(f"No nick in origin: {self.origin!r}")
        return nick
