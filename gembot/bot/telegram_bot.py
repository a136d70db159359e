"""Telegram bot implementation with polling mechanism."""

import asyncio
import logging
from typing import Optional

from telegram import LinkPreviewOptions, Message, Update
from telegram.constants import ChatAction
from telegram.ext import (
    Application,
    CommandHandler,
    MessageHandler,
    ContextTypes,
    filters
)

from gembot.bot.request_handler import BotReply, RequestHandler
from gembot.config.settings import Settings


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Sorry, I encountered an error. Please try again later."


async def safe_reply(message: Optional[Message], text: str) -> Optional[Message]:
    """Send a text reply; send failures are logged, never raised."""
    if message is None:
        return None
    try:
        return await message.reply_text(
            text,
            parse_mode=None,  # Plain text only
            link_preview_options=LinkPreviewOptions(is_disabled=True)
        )
    except Exception as e:
        logger.error(f"Failed to send Telegram message: {e}")
        return None


async def safe_reply_photo(message: Optional[Message], photo: bytes, caption: Optional[str] = None) -> Optional[Message]:
    """Send a photo reply; send failures are logged, never raised."""
    if message is None:
        return None
    try:
        return await message.reply_photo(photo=photo, caption=caption)
    except Exception as e:
        logger.error(f"Failed to send Telegram photo: {e}")
        return None


async def _send_chat_action(message: Message, action: str) -> None:
    try:
        await message.chat.send_action(action)
    except Exception as e:
        logger.debug(f"Failed to send chat action {action}: {e}")


class TelegramBot:
    """Telegram bot with polling mechanism and quota-gated Gemini replies."""

    def __init__(self, settings: Settings, request_handler: RequestHandler):
        """Initialize the Telegram bot.

        Args:
            settings: Application configuration
            request_handler: Runs validation, quota and generation per request
        """
        self.settings = settings
        self.request_handler = request_handler
        self.application: Optional[Application] = None
        self.initialized = False

    async def initialize(self) -> None:
        """Initialize the Telegram bot application."""
        try:
            logger.info("Initializing Telegram bot...")

            self.application = (
                Application.builder()
                .token(self.settings.telegram_bot_token)
                .concurrent_updates(True)
                .build()
            )

            self.application.add_handler(CommandHandler("start", self.start_command))
            self.application.add_handler(CommandHandler("help", self.help_command))
            self.application.add_handler(CommandHandler("chat", self.chat_command))
            self.application.add_handler(CommandHandler("usage", self.usage_command))

            if self.request_handler.image_enabled:
                self.application.add_handler(CommandHandler("image", self.image_command))

            if self.settings.auto_reply_enabled:
                self.application.add_handler(
                    MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_message)
                )

            self.application.add_error_handler(self.error_handler)

            self.initialized = True
            logger.info("Telegram bot initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Telegram bot: {e}")
            raise

    async def start_polling_async(self) -> None:
        """Start the bot polling for messages."""
        if not self.initialized or not self.application:
            raise RuntimeError("Bot not initialized")

        logger.info("Starting Telegram bot polling...")
        try:
            # Manual lifecycle, since we are already inside a running event loop
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling(
                poll_interval=self.settings.polling_interval,
                timeout=self.settings.request_timeout
            )

            while self.initialized:
                await asyncio.sleep(1)

        except asyncio.CancelledError:
            logger.info("Polling cancelled")
        except Exception as e:
            logger.error(f"Error during async polling: {e}")
            raise
        finally:
            try:
                if self.application:
                    if self.application.updater and self.application.updater.running:
                        await self.application.updater.stop()
                    if self.application.running:
                        await self.application.stop()
                    await self.application.shutdown()
            except Exception as e:
                logger.error(f"Error during polling cleanup: {e}")

    async def shutdown(self) -> None:
        """Stop the polling loop; cleanup happens in start_polling_async."""
        if self.initialized:
            logger.info("Stopping Telegram bot...")
            self.initialized = False

    def is_ready(self) -> bool:
        """Check if the bot is ready to process messages."""
        return self.initialized and self.application is not None

    @staticmethod
    def _user_id(update: Update) -> Optional[str]:
        return str(update.effective_user.id) if update.effective_user else None

    async def _send_reply(self, update: Update, reply: BotReply) -> None:
        if reply.has_image:
            await safe_reply_photo(update.message, reply.image, reply.caption)
        else:
            await safe_reply(update.message, reply.text)

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle the /start command."""
        lines = [
            "Hello! This is a Gemini bot.",
            "Commands:",
            "/chat <text> - chat with the AI",
        ]
        if self.request_handler.image_enabled:
            lines.append("/image <description> - generate an image")
        lines.append("/usage - today's token usage")
        if self.settings.quota_enabled:
            lines.append("")
            lines.append(f"Each user gets {self.settings.daily_token_limit} tokens per day (resets at 00:00 UTC).")

        await safe_reply(update.message, "\n".join(lines))

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle the /help command."""
        help_message = (
            "🤖 Gemini Bot\n\n"
            "/start - Start the bot\n"
            "/help - Show this help message\n"
            f"/chat <text> - Ask the AI (up to {self.settings.max_prompt_length} characters)\n"
        )
        if self.request_handler.image_enabled:
            help_message += (
                f"/image <description> - Generate an image "
                f"(up to {self.settings.image_max_prompt_length} characters)\n"
            )
        help_message += "/usage - Show today's token usage\n"
        if self.settings.auto_reply_enabled:
            help_message += "\nYou can also just send a message without a command."

        await safe_reply(update.message, help_message)

    async def chat_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle the /chat command."""
        await self._handle_chat(update)

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle plain text messages when auto-reply is enabled."""
        await self._handle_chat(update)

    async def _handle_chat(self, update: Update) -> None:
        try:
            if not update.message or update.message.text is None:
                return

            user_id = self._user_id(update)
            if not user_id:
                await safe_reply(update.message, "Error: Unable to identify user.")
                return

            logger.info(f"Processing chat from user {user_id}: {update.message.text[:50]}...")

            await _send_chat_action(update.message, ChatAction.TYPING)
            reply = await self.request_handler.handle_chat(user_id, update.message.text)
            await self._send_reply(update, reply)

        except Exception as e:
            logger.error(f"Error handling chat message: {e}", exc_info=True)
            await self._send_error_message(update)

    async def image_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle the /image command."""
        try:
            if not update.message or update.message.text is None:
                return

            user_id = self._user_id(update)
            if not user_id:
                await safe_reply(update.message, "Error: Unable to identify user.")
                return

            logger.info(f"Processing image request from user {user_id}: {update.message.text[:50]}...")

            await _send_chat_action(update.message, ChatAction.UPLOAD_PHOTO)
            reply = await self.request_handler.handle_image(user_id, update.message.text)
            await self._send_reply(update, reply)

        except Exception as e:
            logger.error(f"Error handling image command: {e}", exc_info=True)
            await self._send_error_message(update)

    async def usage_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle the /usage command."""
        try:
            user_id = self._user_id(update)
            if not user_id:
                await safe_reply(update.message, "Error: Unable to identify user.")
                return

            reply = await self.request_handler.handle_usage(user_id)
            await self._send_reply(update, reply)

        except Exception as e:
            logger.error(f"Error handling usage command: {e}", exc_info=True)
            await self._send_error_message(update)

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle errors that escape the command handlers."""
        logger.error(f"Bot error - Update: {update}, Error: {context.error}")

        if isinstance(update, Update):
            await self._send_error_message(update)

    async def _send_error_message(self, update: Update) -> None:
        """Send a generic error message to the user."""
        try:
            if update.effective_chat:
                await update.effective_chat.send_message(GENERIC_ERROR_MESSAGE)
        except Exception as e:
            logger.error(f"Failed to send error message: {e}")
