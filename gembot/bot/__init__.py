"""Telegram transport and request handling."""

from .request_handler import BotReply, RequestHandler, extract_prompt
from .telegram_bot import TelegramBot, safe_reply, safe_reply_photo

__all__ = [
    'BotReply',
    'RequestHandler',
    'extract_prompt',
    'TelegramBot',
    'safe_reply',
    'safe_reply_photo'
]
