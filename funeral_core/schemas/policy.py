"""Policy payload schemas.

Payloads are pure configuration: field ranges are the only behavior. Every
create/update/restore validates through these models before a version is
written.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from funeral_core.db.enums import PolicyType
from funeral_core.schemas.versioning import VersionRead


class LeadScoringPolicyPayload(BaseModel):
    """Scoring weights and thresholds. Thresholds must be strictly descending."""
    at_need_initial_score: int = Field(ge=0, le=100)
    pre_need_initial_score: int = Field(ge=0, le=100)
    general_inquiry_score: int = Field(ge=0, le=100)

    hot_lead_threshold: int = Field(ge=0, le=100)
    warm_lead_threshold: int = Field(ge=0, le=100)
    cold_lead_threshold: int = Field(ge=0, le=100)

    inactive_threshold_days: int = Field(ge=1, le=365)
    enable_auto_archive: bool = True
    archive_after_days: int = Field(ge=1, le=730)

    contact_method_bonus: int = Field(ge=0, le=50)
    referral_source_bonus: int = Field(ge=0, le=50)
    email_engagement_bonus: int = Field(ge=0, le=50)
    phone_engagement_bonus: int = Field(ge=0, le=50)

    require_phone_or_email: bool = True
    require_first_name: bool = True
    require_last_name: bool = True

    preferred_sources: list[str] = Field(default_factory=list)
    disallowed_sources: list[str] = Field(default_factory=list)

    @field_validator("preferred_sources", "disallowed_sources")
    @classmethod
    def normalize_sources(cls, v: list[str]) -> list[str]:
        """Lowercase, strip and de-duplicate while keeping order."""
        seen: list[str] = []
        for source in v:
            cleaned = source.strip().lower()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    @model_validator(mode="after")
    def check_consistency(self) -> "LeadScoringPolicyPayload":
        if not (self.hot_lead_threshold > self.warm_lead_threshold > self.cold_lead_threshold):
            raise ValueError("Thresholds must satisfy hot > warm > cold")
        if self.enable_auto_archive and self.archive_after_days < self.inactive_threshold_days:
            raise ValueError("archive_after_days must be >= inactive_threshold_days")
        overlap = set(self.preferred_sources) & set(self.disallowed_sources)
        if overlap:
            raise ValueError(
                f"Sources cannot be both preferred and disallowed: {', '.join(sorted(overlap))}"
            )
        return self


class NoteManagementPolicyPayload(BaseModel):
    """Note content bounds and edit/delete rules."""
    min_content_length: int = Field(ge=1, le=10_000)
    max_content_length: int = Field(ge=1, le=100_000)
    require_reason_on_edit: bool = False
    allow_delete: bool = True
    max_notes_per_case: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "NoteManagementPolicyPayload":
        if self.min_content_length > self.max_content_length:
            raise ValueError("min_content_length must be <= max_content_length")
        return self


class InvitationManagementPolicyPayload(BaseModel):
    """Token strength and expiry window for family portal invitations."""
    token_length_bytes: int = Field(ge=16, le=64)
    expiration_days: int = Field(ge=1, le=90)
    allow_multiple_invitations_per_email: bool = False
    require_phone_number: bool = False


PAYLOAD_SCHEMAS: dict[PolicyType, type[BaseModel]] = {
    PolicyType.LEAD_SCORING: LeadScoringPolicyPayload,
    PolicyType.NOTE_MANAGEMENT: NoteManagementPolicyPayload,
    PolicyType.INVITATION_MANAGEMENT: InvitationManagementPolicyPayload,
}


# =============================================================================
# Requests / responses
# =============================================================================

class PolicyCreate(BaseModel):
    """Provision version 1 of a policy for a funeral home."""
    funeral_home_id: str = Field(min_length=1, max_length=100)
    payload: dict
    reason: str | None = Field(default=None, max_length=500)


class PolicyUpdate(BaseModel):
    """Partial payload changes; unspecified fields carry over from the current version."""
    changes: dict = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=500)


class PolicyRestore(BaseModel):
    target_version: int = Field(ge=1)


class PolicyRead(VersionRead):
    """Any policy version; payload holds the type-specific fields."""
    policy_type: PolicyType
    funeral_home_id: str
    payload: dict
