"""Main entry point for the Gemini Quota Bot."""

import asyncio
import logging
import signal
import sys
from typing import Optional

# Load environment variables before importing other modules
from dotenv import load_dotenv
load_dotenv()

from pydantic import ValidationError

from gembot.agent.gemini_agent import GeminiAgent
from gembot.agent.image_generator import GeminiImageGenerator
from gembot.bot.request_handler import RequestHandler
from gembot.bot.telegram_bot import TelegramBot
from gembot.config.settings import Settings
from gembot.health.server import HealthServer
from gembot.quota.factory import StorageFactory
from gembot.quota.interface import UsageStorageInterface
from gembot.quota.ledger import QuotaLedger


class AsyncApplication:
    """Owns every service object and ties their lifecycle to the process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.storage: Optional[UsageStorageInterface] = None
        self.ledger: Optional[QuotaLedger] = None
        self.gemini_agent: Optional[GeminiAgent] = None
        self.image_generator: Optional[GeminiImageGenerator] = None
        self.health_server: Optional[HealthServer] = None
        self.telegram_bot: Optional[TelegramBot] = None
        self.running = False
        self._shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Construct and initialize components in dependency order."""
        try:
            logging.info("Initializing application components...")

            # Storage failures here are fatal
            self.storage = StorageFactory.create_storage(self.settings)
            await self.storage.initialize()
            self.ledger = QuotaLedger(self.storage)

            self.gemini_agent = GeminiAgent(self.settings)
            await self.gemini_agent.initialize()

            if self.settings.image_enabled:
                self.image_generator = GeminiImageGenerator(self.settings)
                await self.image_generator.initialize()

            request_handler = RequestHandler(
                self.settings,
                self.ledger,
                self.gemini_agent,
                self.image_generator
            )

            self.telegram_bot = TelegramBot(self.settings, request_handler)
            await self.telegram_bot.initialize()

            if self.settings.health_enabled:
                self.health_server = HealthServer(self.settings.health_host, self.settings.health_port)
                await self.health_server.start()

            logging.info("Application initialized successfully")

        except Exception as e:
            logging.error(f"Failed to initialize application: {e}")
            raise

    async def start(self) -> None:
        """Start the application and block until shutdown."""
        try:
            await self.initialize()
            self.running = True

            self._setup_signal_handlers()

            logging.info("Starting async application...")

            polling_task = asyncio.create_task(self.telegram_bot.start_polling_async())
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            done, pending = await asyncio.wait(
                [polling_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            # Surface a polling crash instead of exiting silently
            if polling_task in done and polling_task.exception():
                raise polling_task.exception()

        except asyncio.CancelledError:
            logging.info("Application cancelled")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Shutdown the application gracefully, in reverse order."""
        logging.info("Initiating graceful shutdown...")
        self.running = False

        if self.telegram_bot:
            await self.telegram_bot.shutdown()

        if self.health_server:
            await self.health_server.stop()

        if self.image_generator:
            await self.image_generator.shutdown()

        if self.gemini_agent:
            await self.gemini_agent.shutdown()

        if self.storage:
            try:
                await self.storage.shutdown()
            except Exception as e:
                logging.error(f"Error during storage shutdown: {e}")

        logging.info("Application shutdown complete")

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown_signal, sig)
            except (NotImplementedError, AttributeError):
                # Windows event loops do not support add_signal_handler
                signal.signal(sig, lambda signum, frame: self._handle_shutdown_signal(signum))

    def _handle_shutdown_signal(self, signum) -> None:
        logging.info(f"Received signal {signum}, initiating shutdown...")
        self._shutdown_event.set()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.get_log_level(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('bot.log', mode='a')
        ]
    )
    # httpx logs every Telegram long-poll request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def main() -> None:
    try:
        settings = Settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.error(f"Invalid configuration: {e}")
        raise

    configure_logging(settings)

    app = AsyncApplication(settings)
    await app.start()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Application interrupted by user")
    except Exception as e:
        logging.error(f"Application failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
