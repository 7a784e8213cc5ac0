"""
Bot Service Package

Provides the built-in handlers, the command router and the command set
of the HAL chat bot.
"""

from .command_router import CommandRouter, CommandInvocation, DuplicateCommandError, ReplyMode
from .counter import SharedCounter
from .handlers import PongHandler, OpenHandler, EchoHandler, WordCounterHandler

__all__ = [
    'CommandRouter',
    'CommandInvocation',
    'DuplicateCommandError',
    'ReplyMode',
    'SharedCounter',
    'PongHandler',
    'OpenHandler',
    'EchoHandler',
    'WordCounterHandler'
]
