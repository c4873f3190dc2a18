"""Shared read schema for SCD2 bookkeeping fields."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class VersionRead(BaseModel):
    """Temporal fields present on every versioned entity response."""
    id: UUID
    business_key: str
    version: int
    valid_from: datetime
    valid_to: datetime | None
    is_current: bool
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str | None
    reason: str | None

    model_config = {"from_attributes": True}
