"""
HAL Main Application Entry Point

Loads configuration, opens the key/value store and the server connection,
registers the fixed handler set, and runs the dispatch loop until the
connection closes.
"""

import asyncio
import signal
import sys
import traceback
from typing import Callable, Optional

from .core.config import BotConfig, ConfigurationManager, DEFAULT_CONFIG_FILE
from .core.database import KeyValueStore
from .core.dispatcher import Dispatcher, HandlerRegistry, OutboundQueue
from .core.logging import initialize_logging, get_logger
from .core.transport import IRCTransport, TransportError
from .services.bot.command_router import CommandRouter
from .services.bot.commands import register_default_commands
from .services.bot.handlers import EchoHandler, OpenHandler, PongHandler, WordCounterHandler


BANNER = "I am a HAL 9001 computer."


class HalApplication:
    """Main HAL application class"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_FILE,
                 transport_factory: Optional[Callable[[BotConfig], IRCTransport]] = None):
        self.config_path = config_path
        self.transport_factory = transport_factory or (
            lambda config: IRCTransport(config.host, config.port)
        )

        self.config_manager: Optional[ConfigurationManager] = None
        self.config: Optional[BotConfig] = None
        self.store: Optional[KeyValueStore] = None
        self.transport: Optional[IRCTransport] = None
        self.sink: Optional[OutboundQueue] = None
        self.registry: Optional[HandlerRegistry] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.command_router: Optional[CommandRouter] = None
        self.writer_task: Optional[asyncio.Task] = None
        self.close_task: Optional[asyncio.Task] = None
        self.installed_signals = []
        self.logger = None

    def initialize(self):
        """Load configuration, set up logging and open the store"""
        try:
            self.config_manager = ConfigurationManager(self.config_path)
            self.config_manager.load_config()

            initialize_logging(self.config_manager.config)
            self.logger = get_logger('main')
            self.config = self.config_manager.get_bot_config()
            self.logger.info(f"Server {self.config.address}, channel {self.config.channel}, "
                             f"nick {self.config.nick}")

            self.store = KeyValueStore(
                self.config.database_path,
                self.config.database_max_connections
            )

            self.sink = OutboundQueue()
            self.registry = self.build_registry()
            self.dispatcher = Dispatcher(self.registry, self.sink)

        except Exception as e:
            if self.logger:
                self.logger.error(f"Failed to initialize application: {e}", exc_info=True)
            else:
                print(f"Failed to initialize application: {e}")
                traceback.print_exc()
            raise

    def build_registry(self) -> HandlerRegistry:
        """Create the fixed handler set"""
        config = self.config
        registry = HandlerRegistry()

        registry.register(PongHandler())
        registry.register(OpenHandler(config.nick))
        if config.echo_enabled:
            registry.register(EchoHandler())
        registry.register(WordCounterHandler(config.report_command))

        self.command_router = CommandRouter(config.prefix)
        register_default_commands(self.command_router, self.store, config.quotes)
        registry.register(self.command_router)

        return registry

    async def start(self):
        """
        Connect and run until the connection closes.

        Raises:
            TransportError: If the server cannot be reached
        """
        self.initialize()

        self.transport = self.transport_factory(self.config)
        try:
            await self.transport.connect()
        except TransportError as e:
            self.logger.error(f"Dial failed: {e}")
            self.store.close()
            raise

        self._install_signal_handlers()
        self.writer_task = asyncio.create_task(self.transport.run_writer(self.sink))

        try:
            await self.transport.register(self.sink, self.config.nick, self.config.channel)
            await self.dispatcher.run(self.transport.messages())
        finally:
            await self.shutdown()

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._signal_handler, sig)
                self.installed_signals.append(sig)
            except (NotImplementedError, RuntimeError) as e:
                self.logger.debug(f"Cannot install handler for {signal.Signals(sig).name}: {e}")

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in self.installed_signals:
            loop.remove_signal_handler(sig)
        self.installed_signals.clear()

    def _signal_handler(self, sig):
        self.logger.info(f"Received {signal.Signals(sig).name}, closing connection")
        if self.close_task is None:
            self.close_task = asyncio.create_task(self.transport.close())

    async def shutdown(self):
        """Let in-flight handlers finish, flush replies and release resources"""
        self.logger.info("Shutting down")
        self._remove_signal_handlers()

        await self.dispatcher.wait_idle()

        if self.writer_task:
            if self.transport.connected:
                try:
                    await asyncio.wait_for(self.sink.join(), timeout=5)
                except asyncio.TimeoutError:
                    self.logger.warning("Timed out flushing outbound messages")
            self.writer_task.cancel()
            await asyncio.gather(self.writer_task, return_exceptions=True)

        if self.close_task is not None:
            await self.close_task
        else:
            await self.transport.close()
        self.store.close()

        self.logger.info(f"Dispatcher stats: {self.dispatcher.get_stats()}")


async def main(config_path: str = DEFAULT_CONFIG_FILE):
    """Main entry point"""
    print(BANNER)
    app = HalApplication(config_path)

    try:
        await app.start()
    except TransportError:
        sys.exit(1)


def run():
    """Console script entry point"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nApplication interrupted")
        sys.exit(0)


if __name__ == "__main__":
    run()
