"""
Command Router

Handler that strips a configured prefix from user-text messages, splits
off a command name, and routes the remaining text to a named command
function. Command functions return reply text; the router owns writing
that reply to the outbound queue.
"""

import inspect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ...core.dispatcher import Handler, OutboundQueue
from ...core.logging import get_logger
from ...models.message import (
    MalformedMessageError, ProtocolMessage, PRIVMSG, is_channel
)


CommandResult = Union[Optional[str], Awaitable[Optional[str]]]
CommandFunc = Callable[[str, str], CommandResult]

_WHITESPACE = re.compile(r'\s+')


class DuplicateCommandError(ValueError):
    """Raised when a command name is registered twice"""
    pass


class ReplyMode(Enum):
    """Where command replies are addressed"""
    TARGET = "target"   # channel the command was said in
    SENDER = "sender"   # nick that sent the command


@dataclass(frozen=True)
class CommandInvocation:
    """One parsed command call"""
    name: str
    body: str
    source: str
    target: str


class CommandRouter(Handler):
    """
    Routes prefixed text commands to registered command functions
    """

    def __init__(self, prefix: str = "»", reply_mode: ReplyMode = ReplyMode.TARGET):
        if not prefix:
            raise ValueError("Command prefix must not be empty")
        self.prefix = prefix
        self.reply_mode = reply_mode
        self.logger = get_logger('command_router')

        # Dicts keep insertion order, which help relies on
        self.commands: Dict[str, CommandFunc] = {}

    def register(self, name: str, func: CommandFunc) -> None:
        """
        Register a command function under name.

        Raises:
            ValueError: If the name is empty or contains whitespace
            DuplicateCommandError: If the name is already registered
        """
        if not name or _WHITESPACE.search(name):
            raise ValueError(f"Invalid command name: {name!r}")
        if name in self.commands:
            raise DuplicateCommandError(f"Command '{name}' is already registered")

        self.commands[name] = func
        self.logger.debug(f"Registered command '{name}'")

    def command(self, name: str) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator form of register()"""
        def decorator(func: CommandFunc) -> CommandFunc:
            self.register(name, func)
            return func
        return decorator

    def registered_names(self) -> List[str]:
        """Command names in registration order"""
        return list(self.commands)

    def __contains__(self, name: str) -> bool:
        return name in self.commands

    def accepts(self, message: ProtocolMessage) -> bool:
        return message.command == PRIVMSG

    def parse(self, message: ProtocolMessage) -> Optional[CommandInvocation]:
        """
        Turn a user-text message into a command invocation.

        Returns None when the body does not carry the prefix or names no
        command.

        Raises:
            MalformedMessageError: If the message lacks target, body or nick
        """
        target, body = message.extract_privmsg()
        source = message.extract_nick()

        if not body.startswith(self.prefix):
            return None

        parts = _WHITESPACE.split(body[len(self.prefix):], maxsplit=1)
        name = parts[0]
        rest = parts[1] if len(parts) > 1 else ""
        if not name:
            return None

        return CommandInvocation(name=name, body=rest, source=source, target=target)

    def reply_target(self, invocation: CommandInvocation) -> str:
        """Destination of the reply to an invocation"""
        if self.reply_mode is ReplyMode.SENDER or not is_channel(invocation.target):
            return invocation.source
        return invocation.target

    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        try:
            invocation = self.parse(message)
        except MalformedMessageError as e:
            self.logger.warning(f"Discarding malformed message: {e}")
            return

        if invocation is None:
            return

        func = self.commands.get(invocation.name)
        if func is None:
            self.logger.debug(f"Ignoring unknown command '{invocation.name}'")
            return

        self.logger.info(f"{invocation.source} invoked '{invocation.name}'")

        try:
            result = func(invocation.body, invocation.source)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.logger.error(f"Command '{invocation.name}' failed: {e}", exc_info=True)
            return

        if result:
            await sink.put(ProtocolMessage.privmsg(self.reply_target(invocation), result))
