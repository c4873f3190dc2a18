"""Note-related Pydantic schemas."""

from pydantic import BaseModel, Field

from funeral_core.schemas.versioning import VersionRead


class NoteCreate(BaseModel):
    """Content bounds come from the funeral home's note policy, not from here."""
    content: str


class NoteUpdate(BaseModel):
    content: str
    reason: str | None = Field(default=None, max_length=500)


class NoteRead(VersionRead):
    funeral_home_id: str
    case_id: str
    content: str
