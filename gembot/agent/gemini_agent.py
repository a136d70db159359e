"""Pydantic AI agent wrapping Gemini text generation."""

import logging
from typing import Optional

from google.genai import errors as genai_errors
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models import Model

from gembot.agent.errors import GenerationError, RateLimitedError
from gembot.config.settings import Settings


logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


class GeminiAgent:
    """Text generation through Pydantic AI and a Gemini model."""

    def __init__(self, settings: Settings, model: Optional[Model] = None):
        """Initialize the agent.

        Args:
            settings: Application configuration settings
            model: Optional pre-built model; a GoogleModel is created when omitted
        """
        self.settings = settings
        self.model = model
        self.agent: Optional[Agent] = None
        self.initialized = False

    async def initialize(self) -> None:
        """Create the Pydantic AI agent."""
        try:
            logger.info(f"Initializing Gemini agent with model {self.settings.gemini_model}...")

            if self.model is None:
                from pydantic_ai.models.google import GoogleModel, GoogleModelSettings
                from pydantic_ai.providers.google import GoogleProvider

                self.model = GoogleModel(
                    self.settings.gemini_model,
                    provider=GoogleProvider(api_key=self.settings.google_api_key),
                    settings=GoogleModelSettings(
                        temperature=self.settings.temperature,
                        max_tokens=self.settings.max_output_tokens,
                    )
                )

            if self.settings.system_prompt:
                self.agent = Agent(model=self.model, system_prompt=self.settings.system_prompt)
            else:
                self.agent = Agent(model=self.model)

            self.initialized = True
            logger.info("Gemini agent initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Gemini agent: {e}")
            raise

    async def shutdown(self) -> None:
        """Release the agent."""
        self.agent = None
        self.initialized = False
        logger.info("Gemini agent shutdown complete")

    def is_ready(self) -> bool:
        """Check if the agent is ready to process requests."""
        return self.initialized and self.agent is not None

    async def generate_text(self, prompt: str) -> str:
        """Generate a reply for a prompt.

        Returns:
            Generated text, empty if the model produced none

        Raises:
            RuntimeError: If the agent is not initialized
            RateLimitedError: If the provider reports a rate limit
            GenerationError: For any other provider failure
        """
        if not self.is_ready():
            raise RuntimeError("Gemini agent not initialized")

        logger.debug(f"Generating response for prompt: {prompt[:100]}...")

        try:
            result = await self.agent.run(prompt)
        except ModelHTTPError as e:
            if e.status_code == RATE_LIMIT_STATUS:
                raise RateLimitedError(f"Gemini rate limit: {e}") from e
            raise GenerationError(f"Gemini HTTP error {e.status_code}: {e}") from e
        except genai_errors.APIError as e:
            if e.code == RATE_LIMIT_STATUS:
                raise RateLimitedError(f"Gemini rate limit: {e}") from e
            raise GenerationError(f"Gemini API error {e.code}: {e}") from e
        except (UnexpectedModelBehavior, AgentRunError) as e:
            raise GenerationError(f"Gemini returned an unusable response: {e}") from e

        return result.output or ""
