"""Data models for daily usage accounting using Pydantic."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UsageRecord(BaseModel):
    """Per-user usage counter for a single UTC day.

    Persisted as ``{"userId": ..., "day": "YYYY-MM-DD", "used": ...}``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True
    )

    user_id: str = Field(..., alias="userId", min_length=1, description="Stable requester identifier")
    day: date = Field(..., description="UTC calendar date this counter applies to")
    used: int = Field(default=0, ge=0, description="Units consumed so far on this day")

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("User id cannot be empty or whitespace only")
        return v

    def to_document(self) -> dict:
        """Serialize to the persisted document layout."""
        return self.model_dump(mode="json", by_alias=True)


class Allowance(BaseModel):
    """Outcome of a quota check."""

    allowed: bool
    used: int
    limit: int
    day: date
    resets_at: Optional[datetime] = None

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)
