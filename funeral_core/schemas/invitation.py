"""Family portal invitation schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from funeral_core.db.enums import InvitationRole, InvitationStatus
from funeral_core.schemas.versioning import VersionRead


class InvitationCreate(BaseModel):
    """
    Request schema for inviting a family member to the portal.

    Validates:
    - Email format (normalized to lowercase)
    - Role is a valid enum value
    """
    case_id: str = Field(min_length=1, max_length=100)
    recipient_email: EmailStr
    recipient_name: str = Field(min_length=1, max_length=255)
    recipient_phone: str | None = Field(default=None, max_length=50)
    relationship: str | None = Field(default=None, max_length=100)
    role: InvitationRole = InvitationRole.FAMILY_MEMBER

    @field_validator("recipient_email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class InvitationRead(VersionRead):
    """
    Invitation version as seen by staff.

    status is the computed status (EXPIRED when a PENDING token has lapsed);
    the token itself is never returned.
    """
    funeral_home_id: str
    case_id: str
    recipient_email: str
    recipient_name: str
    recipient_phone: str | None
    relationship: str | None
    role: InvitationRole
    token_expires_at: datetime
    status: InvitationStatus
    sent_by: str
    accepted_at: datetime | None
    revoked_at: datetime | None


class InvitationListResponse(BaseModel):
    items: list[InvitationRead]
    limit: int
    offset: int
