"""
Gemini Quota Bot

A Telegram bot that forwards prompts to Google Gemini and meters each user's
daily consumption:
- /chat text replies and optional /image generation
- Per-user daily token quota, reset at midnight UTC
- Flexible usage storage backends (JSON/Database)
- Optional HTTP health endpoint
"""

__version__ = "1.0.0"
__description__ = "Telegram Gemini bot with per-user daily token quota"
