"""
Handler Registry and Dispatcher for HAL

Evaluates every registered handler against each inbound protocol message
and runs the actions of accepting handlers as independent asyncio tasks.
Handler actions hand their replies to a shared outbound queue that a
single writer drains.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterator, List, Set, Tuple

from ..models.message import ProtocolMessage
from .logging import get_logger, get_structured_logger


class OutboundQueue:
    """
    Multi-producer, single-consumer queue of outbound messages.

    Messages put by one producer are delivered in the order they were put.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def put(self, message: ProtocolMessage) -> None:
        await self._queue.put(message)

    def put_nowait(self, message: ProtocolMessage) -> None:
        self._queue.put_nowait(message)

    async def get(self) -> ProtocolMessage:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued message has been taken and marked done"""
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def drain_nowait(self) -> List[ProtocolMessage]:
        """Remove and return everything currently queued"""
        messages = []
        while not self._queue.empty():
            messages.append(self._queue.get_nowait())
            self._queue.task_done()
        return messages


class Handler(ABC):
    """Abstract base class for message handlers"""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def accepts(self, message: ProtocolMessage) -> bool:
        """
        Check if this handler reacts to the given message.

        Args:
            message: The inbound message

        Returns:
            True if handle() should run for this message
        """
        pass

    @abstractmethod
    async def handle(self, message: ProtocolMessage, sink: OutboundQueue) -> None:
        """
        React to an accepted message.

        Args:
            message: The inbound message
            sink: Queue receiving zero or more outbound messages
        """
        pass


class HandlerRegistry:
    """Ordered collection of registered handlers"""

    def __init__(self):
        self._handlers: List[Handler] = []
        self.logger = get_logger('handler_registry')

    def register(self, handler: Handler) -> None:
        """Append a handler; evaluation follows registration order"""
        self._handlers.append(handler)
        self.logger.info(f"Registered handler: {handler.name}")

    @property
    def handlers(self) -> Tuple[Handler, ...]:
        return tuple(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[Handler]:
        return iter(self.handlers)


class Dispatcher:
    """
    Dispatches inbound messages to accepting handlers.

    dispatch() never raises and never waits for handler actions. Failures
    inside a handler are logged and stay local to that handler.
    """

    def __init__(self, registry: HandlerRegistry, sink: OutboundQueue):
        self.registry = registry
        self.sink = sink
        self.logger = get_logger('dispatcher')
        self.event_logger = get_structured_logger('dispatcher')

        self.pending_tasks: Set[asyncio.Task] = set()
        self.stats = {
            'messages_dispatched': 0,
            'handler_invocations': defaultdict(int),
            'handler_failures': defaultdict(int),
            'started_at': datetime.now(timezone.utc)
        }

    def dispatch(self, message: ProtocolMessage) -> List[asyncio.Task]:
        """
        Start the action of every handler that accepts message.

        Must be called from a running event loop.

        Returns:
            The scheduled handler tasks, in registration order
        """
        self.stats['messages_dispatched'] += 1
        tasks = []

        for handler in self.registry:
            try:
                accepted = handler.accepts(message)
            except Exception as e:
                self.logger.error(f"Handler {handler.name} failed to test {message.command}: {e}")
                self.stats['handler_failures'][handler.name] += 1
                continue

            if not accepted:
                continue

            self.stats['handler_invocations'][handler.name] += 1
            task = asyncio.create_task(self._run_handler(handler, message))
            self.pending_tasks.add(task)
            task.add_done_callback(self.pending_tasks.discard)
            tasks.append(task)

        if not tasks:
            self.logger.debug(f"No handler accepted {message.command}")

        return tasks

    async def _run_handler(self, handler: Handler, message: ProtocolMessage) -> None:
        """Run one handler action, containing any failure"""
        try:
            await handler.handle(message, self.sink)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.stats['handler_failures'][handler.name] += 1
            self.event_logger.error(
                "handler_failed",
                handler=handler.name,
                command=message.command,
                origin=message.origin,
                exc_info=True
            )

    async def run(self, messages: AsyncIterator[ProtocolMessage]) -> None:
        """Dispatch every message until the source is exhausted"""
        self.logger.info("Dispatch loop started")
        async for message in messages:
            self.dispatch(message)
        self.logger.info("Dispatch loop finished, message source closed")

    async def wait_idle(self) -> None:
        """Wait until every in-flight handler action has finished"""
        while True:
            running = [task for task in self.pending_tasks if not task.done()]
            if not running:
                return
            await asyncio.gather(*running, return_exceptions=True)

    def get_stats(self) -> Dict[str, Any]:
        """Get dispatcher statistics"""
        uptime = datetime.now(timezone.utc) - self.stats['started_at']

        return {
            'messages_dispatched': self.stats['messages_dispatched'],
            'handler_invocations': dict(self.stats['handler_invocations']),
            'handler_failures': dict(self.stats['handler_failures']),
            'in_flight': len(self.pending_tasks),
            'uptime_seconds': uptime.total_seconds(),
            'registered_handlers': [handler.name for handler in self.registry]
        }
