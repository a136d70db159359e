"""Gemini image generation through the google-genai SDK."""

import logging
from dataclasses import dataclass
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from gembot.agent.errors import GenerationError, NoImageError, RateLimitedError
from gembot.config.settings import Settings


logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


@dataclass
class GeneratedImage:
    """Image returned by the provider."""

    data: bytes
    mime_type: str = "image/png"
    text: str = ""


class GeminiImageGenerator:
    """Generates images from text prompts with a Gemini image model."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        """Initialize the generator.

        Args:
            settings: Application configuration settings
            client: Optional pre-built google-genai client
        """
        self.settings = settings
        self.client = client

    async def initialize(self) -> None:
        if self.client is None:
            self.client = genai.Client(api_key=self.settings.google_api_key)
        logger.info(f"Image generator ready with model {self.settings.image_model}")

    async def shutdown(self) -> None:
        self.client = None
        logger.info("Image generator shutdown complete")

    def is_ready(self) -> bool:
        return self.client is not None

    async def generate_image(self, prompt: str, aspect_ratio: Optional[str] = None) -> GeneratedImage:
        """Generate one image for a prompt.

        Raises:
            RuntimeError: If the generator is not initialized
            RateLimitedError: If the provider reports a rate limit
            NoImageError: If the response carries no image part
            GenerationError: For any other provider failure
        """
        if not self.is_ready():
            raise RuntimeError("Image generator not initialized")

        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio or self.settings.image_aspect_ratio),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.settings.image_model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            if e.code == RATE_LIMIT_STATUS:
                raise RateLimitedError(f"Gemini image rate limit: {e}") from e
            raise GenerationError(f"Gemini image API error {e.code}: {e}") from e

        return self._extract_image(response)

    @staticmethod
    def _extract_image(response) -> GeneratedImage:
        """Pick the first inline image part out of a response."""
        parts = []
        for candidate in response.candidates or []:
            if candidate.content and candidate.content.parts:
                parts.extend(candidate.content.parts)

        text = " ".join(part.text.strip() for part in parts if part.text and part.text.strip())

        for part in parts:
            inline = part.inline_data
            if inline is not None and inline.data:
                return GeneratedImage(
                    data=inline.data,
                    mime_type=inline.mime_type or "image/png",
                    text=text
                )

        logger.warning(f"Image response had no image part ({len(parts)} parts, text={text[:100]!r})")
        raise NoImageError(text=text)
