# --- File: app/schemas/common/base.py ---
"""
Base schema classes with common fields and configurations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "BaseSchema",
    "BaseResponseSchema",
    "PaginationMeta",
    "PaginatedResponse",
]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    All application-facing schemas inherit from this to ensure
    consistent behaviour.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=False,
        str_strip_whitespace=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, v: Any) -> Any:
        # Naive datetimes are UTC throughout the service
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict for broadcasting and error details."""
        return self.model_dump(mode="json")


class BaseResponseSchema(BaseSchema):
    """Base schema for persisted entities."""

    id: str = Field(..., description="Unique identifier")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class PaginationMeta(BaseSchema):
    page: int
    limit: int
    total: int
    pages: int


class PaginatedResponse(BaseSchema):
    items: List[Any]
    pagination: PaginationMeta
