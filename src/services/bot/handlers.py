"""
Built-in message handlers

Pong answers server keep-alives, Open and Echo react to user text, and
WordCounter keeps a running word total shared by all of its invocations.
"""

from ...core.dispatcher import Handler, OutboundQueue
from ...core.logging import get_logger
from ...models.message import (
    MalformedMessageError, ProtocolMessage, PING, PONG, PRIVMSG, is_channel
)
from .counter import SharedCounter


OPEN_TRIGGER = "open the pod bay doors"


class PongHandler(Handler):
    """Answers PING with PONG carrying the same params"""

    def accepts(self, message: ProtocolMessage) -> bool:
        return message.command == PING

    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        await sink.put(ProtocolMessage(command=PONG, params=message.params))


class OpenHandler(Handler):
    """Refuses to open the pod bay doors when asked by name"""

    def __init__(self, nick: str = "hal"):
        self.nick = nick.lower()
        self.logger = get_logger('open_handler')

    def accepts(self, message: ProtocolMessage) -> bool:
        return message.command == PRIVMSG

    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        try:
            target, body = message.extract_privmsg()
            nick = message.extract_nick()
        except MalformedMessageError as e:
            self.logger.warning(f"Discarding malformed message: {e}")
            return

        lowered = body.lower()
        if OPEN_TRIGGER in lowered and self.nick in lowered:
            response = f"I can't let you do that, {nick}."
            await sink.put(ProtocolMessage.privmsg(target, response))


class EchoHandler(Handler):
    """Re-sends every user-text message to the target it was sent to"""

    def __init__(self):
        self.logger = get_logger('echo_handler')

    def accepts(self, message: ProtocolMessage) -> bool:
        return message.command == PRIVMSG

    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        try:
            target, body = message.extract_privmsg()
        except MalformedMessageError as e:
            self.logger.warning(f"Discarding malformed message: {e}")
            return

        if body:
            await sink.put(ProtocolMessage.privmsg(target, body))


class WordCounterHandler(Handler):
    """
    Counts words across all user-text messages.

    A body equal to the report command is answered with the running total
    instead of being counted.
    """

    def __init__(self, report_command: str = "»words", counter: SharedCounter = None):
        self.report_command = report_command
        self.counter = counter if counter is not None else SharedCounter()
        self.logger = get_logger('word_counter')

    def accepts(self, message: ProtocolMessage) -> bool:
        return message.command == PRIVMSG

    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        try:
            target, body = message.extract_privmsg()
        except MalformedMessageError as e:
            self.logger.warning(f"Discarding malformed message: {e}")
            return

        if body != self.report_command:
            self.counter.add(len(body.split()))
            return

        try:
            nick = message.extract_nick()
        except MalformedMessageError as e:
            self.logger.warning(f"Discarding malformed message: {e}")
            return

        total = self.counter.value
        # A report asked for in private goes back to the asker
        reply_to = target if is_channel(target) else nick
        await sink.put(ProtocolMessage.privmsg(reply_to, f"{nick}: I have counted {total} words."))
