"""Transport-independent handling of chat and image requests.

Each request is validated, gated by the quota ledger, sent to the provider and
then charged. Storage failures are not handled here; they propagate to the
transport layer, which reports them generically.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from gembot.agent.errors import GenerationError, NoImageError, RateLimitedError
from gembot.agent.gemini_agent import GeminiAgent
from gembot.agent.image_generator import GeminiImageGenerator
from gembot.config.settings import Settings
from gembot.quota.ledger import QuotaLedger
from gembot.quota.models import Allowance


logger = logging.getLogger(__name__)

TELEGRAM_CAPTION_LIMIT = 1024


@dataclass
class BotReply:
    """What the transport should send back."""

    text: str
    image: Optional[bytes] = None
    caption: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None


def extract_prompt(text: Optional[str]) -> str:
    """Strip a leading command token such as ``/chat`` or ``/chat@MyBot``."""
    if not text:
        return ""
    text = text.strip()
    if text.startswith("/"):
        parts = text.split(maxsplit=1)
        return parts[1].strip() if len(parts) > 1 else ""
    return text


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


class RequestHandler:
    """Runs the check, generate, charge cycle for one user message."""

    def __init__(
        self,
        settings: Settings,
        ledger: QuotaLedger,
        text_generator: GeminiAgent,
        image_generator: Optional[GeminiImageGenerator] = None
    ):
        self.settings = settings
        self.ledger = ledger
        self.text_generator = text_generator
        self.image_generator = image_generator

    @property
    def limit(self) -> int:
        return self.settings.daily_token_limit

    @property
    def image_enabled(self) -> bool:
        return self.settings.image_enabled and self.image_generator is not None

    def _quota_exceeded_reply(self, allowance: Allowance) -> BotReply:
        resets_at = allowance.resets_at.strftime("%Y-%m-%d %H:%M UTC") if allowance.resets_at else "midnight UTC"
        return BotReply(
            f"You have used your daily limit ({allowance.used}/{allowance.limit} tokens). "
            f"The quota resets at {resets_at}."
        )

    def _usage_footer(self, used: int) -> str:
        return f"\n\n(Tokens used today: {used}/{self.limit})"

    async def handle_chat(self, user_id: str, text: Optional[str]) -> BotReply:
        """Handle a /chat request."""
        prompt = extract_prompt(text)

        if not prompt:
            return BotReply("Please enter some text after /chat.")

        if len(prompt) > self.settings.max_prompt_length:
            return BotReply(
                f"Message too long! The limit is {self.settings.max_prompt_length} characters."
            )

        if self.settings.quota_enabled:
            allowance = await self.ledger.check_allowance(user_id, self.limit)
            if not allowance.allowed:
                logger.warning(f"User {user_id} is over quota ({allowance.used}/{allowance.limit})")
                return self._quota_exceeded_reply(allowance)

        try:
            reply_text = await self.text_generator.generate_text(prompt)
        except RateLimitedError as e:
            logger.warning(f"Rate limited while answering user {user_id}: {e}")
            return BotReply("Gemini is rate limited (429). Please try again in a few seconds.")
        except GenerationError as e:
            logger.error(f"Generation failed for user {user_id}: {e}", exc_info=True)
            return BotReply("AI error, please try again later.")

        footer = ""
        if self.settings.quota_enabled:
            used = await self.ledger.charge_text(user_id, reply_text, self.limit)
            footer = self._usage_footer(used)

        if not reply_text.strip():
            reply_text = "The AI returned an empty response."

        body = truncate(reply_text, self.settings.max_response_length - len(footer))
        return BotReply(body + footer)

    async def handle_image(self, user_id: str, text: Optional[str]) -> BotReply:
        """Handle an /image request."""
        if not self.image_enabled:
            return BotReply("Image generation is disabled.")

        prompt = extract_prompt(text)

        if not prompt:
            return BotReply("Please describe the image after /image.")

        if len(prompt) > self.settings.image_max_prompt_length:
            return BotReply(
                f"Description too long! The limit is {self.settings.image_max_prompt_length} characters."
            )

        if self.settings.quota_enabled:
            allowance = await self.ledger.check_allowance(user_id, self.limit)
            if not allowance.allowed:
                logger.warning(f"User {user_id} is over quota ({allowance.used}/{allowance.limit})")
                return self._quota_exceeded_reply(allowance)

        try:
            image = await self.image_generator.generate_image(prompt, self.settings.image_aspect_ratio)
        except RateLimitedError as e:
            logger.warning(f"Rate limited while drawing for user {user_id}: {e}")
            return BotReply("Gemini is rate limited (429). Please try again in a few seconds.")
        except NoImageError as e:
            logger.warning(f"No image returned for user {user_id}: {e.text[:100]!r}")
            return BotReply("The AI did not return an image. Try a different description.")
        except GenerationError as e:
            logger.error(f"Image generation failed for user {user_id}: {e}", exc_info=True)
            return BotReply("Image generation failed, please try again later.")

        caption = f"🖼 {prompt}"
        if self.settings.quota_enabled:
            used = await self.ledger.charge_text(user_id, image.text, self.limit)
            caption += self._usage_footer(used)

        return BotReply(
            text=image.text,
            image=image.data,
            caption=truncate(caption, TELEGRAM_CAPTION_LIMIT)
        )

    async def handle_usage(self, user_id: str) -> BotReply:
        """Report today's usage for a user."""
        if not self.settings.quota_enabled:
            return BotReply("Usage limits are disabled.")

        allowance = await self.ledger.check_allowance(user_id, self.limit)
        resets_at = allowance.resets_at.strftime("%Y-%m-%d %H:%M UTC") if allowance.resets_at else "midnight UTC"
        return BotReply(
            "📊 Today's usage\n\n"
            f"Used: {allowance.used}/{allowance.limit} tokens\n"
            f"Remaining: {allowance.remaining}\n"
            f"Resets at: {resets_at}"
        )
