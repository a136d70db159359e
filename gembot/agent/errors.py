"""Errors raised by the generation adapters."""


class GenerationError(Exception):
    """The provider failed to produce a usable response."""


class RateLimitedError(GenerationError):
    """The provider is rejecting requests because of rate limits."""


class NoImageError(GenerationError):
    """The provider answered but returned no image."""

    def __init__(self, message: str = "Provider returned no image", text: str = ""):
        super().__init__(message)
        self.text = text
