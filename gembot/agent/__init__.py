"""Generation adapters for Gemini text and image models."""

from .errors import GenerationError, RateLimitedError, NoImageError
from .gemini_agent import GeminiAgent
from .image_generator import GeminiImageGenerator, GeneratedImage

__all__ = [
    'GenerationError',
    'RateLimitedError',
    'NoImageError',
    'GeminiAgent',
    'GeminiImageGenerator',
    'GeneratedImage'
]
