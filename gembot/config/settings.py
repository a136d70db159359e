"""Configuration management using Pydantic settings."""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


# Aspect ratios accepted by Gemini image models
SUPPORTED_ASPECT_RATIOS = ("1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9")


class Settings(BaseSettings):
    """Application settings with validation."""

    # Telegram Bot Configuration
    telegram_bot_token: str = Field(..., description="Bot token issued by BotFather")

    # Google AI Configuration
    google_api_key: str = Field(..., description="Gemini API key")
    gemini_model: str = Field("gemini-2.0-flash", description="Text generation model")
    temperature: float = Field(0.9, ge=0.0, le=2.0)
    max_output_tokens: int = Field(300, gt=0)
    system_prompt: str = Field("", description="Optional system prompt for the chat model")

    # Prompt and reply limits
    max_prompt_length: int = Field(1000, gt=0)
    max_response_length: int = Field(4096, gt=0)

    # Daily quota
    quota_enabled: bool = Field(True)
    daily_token_limit: int = Field(300, description="Approximate tokens (words) per user per UTC day")

    # Image generation
    image_enabled: bool = Field(False)
    image_model: str = Field("gemini-2.5-flash-image")
    image_aspect_ratio: str = Field("1:1")
    image_max_prompt_length: int = Field(300, gt=0)

    # Treat plain (non-command) text as a /chat prompt
    auto_reply_enabled: bool = Field(False)

    # Health probe
    health_enabled: bool = Field(False)
    health_host: str = Field("0.0.0.0")
    health_port: int = Field(8080, gt=0, lt=65536)

    # Application Configuration
    log_level: str = Field("INFO")
    polling_interval: int = Field(1)  # seconds
    request_timeout: int = Field(30)  # seconds

    # Usage persistence
    persistence_type: str = Field("json", description="'json' or 'database'")
    json_storage_dir: str = Field("data/usage")
    database_url: str = Field("sqlite:///data/usage.db")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Allow extra fields in .env file
    }

    @field_validator("telegram_bot_token")
    @classmethod
    def validate_telegram_token(cls, v):
        """Validate Telegram bot token format."""
        if not v or ":" not in v:
            raise ValueError("Invalid Telegram bot token format")
        return v

    @field_validator("google_api_key")
    @classmethod
    def validate_google_api_key(cls, v):
        """Validate Google API key is present."""
        if not v or not v.strip():
            raise ValueError("Google API key must not be empty")
        return v.strip()

    @field_validator("daily_token_limit")
    @classmethod
    def validate_daily_token_limit(cls, v):
        if v < 0:
            raise ValueError("Daily token limit cannot be negative")
        return v

    @field_validator("image_aspect_ratio")
    @classmethod
    def validate_image_aspect_ratio(cls, v):
        """Validate the aspect ratio against what Gemini accepts."""
        if v not in SUPPORTED_ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {list(SUPPORTED_ASPECT_RATIOS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("persistence_type")
    @classmethod
    def validate_persistence_type(cls, v):
        """Validate persistence type."""
        valid_types = ["json", "database"]
        if v.lower() not in valid_types:
            raise ValueError(f"Persistence type must be one of: {valid_types}")
        return v.lower()

    def get_log_level(self) -> int:
        """Get logging level as integer."""
        return getattr(logging, self.log_level)
