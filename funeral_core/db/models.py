"""SQLAlchemy ORM models for versioned policies, invitations, templates, cases and leads.

All tables are SCD2: see funeral_core.db.versioning for the bookkeeping
columns and invariants. Cross-entity references use business keys, never
per-version row ids, so a reference survives new versions of its target.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Float, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from funeral_core.db.base import Base
from funeral_core.db.enums import (
    CaseStatus, InvitationStatus, LeadStatus, TemplateStatus
)
from funeral_core.db.versioning import VersionedMixin, versioned_table_args


JsonType = JSON().with_variant(JSONB, "postgresql")


def _one_current_per_funeral_home(tablename: str) -> Index:
    return Index(
        f"uq_{tablename}_fh_current",
        "funeral_home_id",
        unique=True,
        postgresql_where=text("is_current = true"),
        sqlite_where=text("is_current = 1"),
    )


# =============================================================================
# Policies (one business key per funeral home)
# =============================================================================

class LeadScoringPolicy(VersionedMixin, Base):
    """Tunable lead scoring weights and thresholds for one funeral home."""
    __tablename__ = "lead_scoring_policies"
    __table_args__ = versioned_table_args(
        "lead_scoring_policies",
        _one_current_per_funeral_home("lead_scoring_policies"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Initial score by lead type
    at_need_initial_score: Mapped[int] = mapped_column(Integer, nullable=False)
    pre_need_initial_score: Mapped[int] = mapped_column(Integer, nullable=False)
    general_inquiry_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Temperature thresholds (hot > warm > cold)
    hot_lead_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    warm_lead_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    cold_lead_threshold: Mapped[int] = mapped_column(Integer, nullable=False)

    # Lifecycle
    inactive_threshold_days: Mapped[int] = mapped_column(Integer, nullable=False)
    enable_auto_archive: Mapped[bool] = mapped_column(Boolean, nullable=False)
    archive_after_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Bonuses
    contact_method_bonus: Mapped[int] = mapped_column(Integer, nullable=False)
    referral_source_bonus: Mapped[int] = mapped_column(Integer, nullable=False)
    email_engagement_bonus: Mapped[int] = mapped_column(Integer, nullable=False)
    phone_engagement_bonus: Mapped[int] = mapped_column(Integer, nullable=False)

    # Required fields
    require_phone_or_email: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_first_name: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_last_name: Mapped[bool] = mapped_column(Boolean, nullable=False)

    preferred_sources: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    disallowed_sources: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)


class NoteManagementPolicy(VersionedMixin, Base):
    """Content bounds and edit/delete rules for internal case notes."""
    __tablename__ = "note_management_policies"
    __table_args__ = versioned_table_args(
        "note_management_policies",
        _one_current_per_funeral_home("note_management_policies"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    min_content_length: Mapped[int] = mapped_column(Integer, nullable=False)
    max_content_length: Mapped[int] = mapped_column(Integer, nullable=False)
    require_reason_on_edit: Mapped[bool] = mapped_column(Boolean, nullable=False)
    allow_delete: Mapped[bool] = mapped_column(Boolean, nullable=False)
    max_notes_per_case: Mapped[int | None] = mapped_column(Integer, nullable=True)


class InvitationManagementPolicy(VersionedMixin, Base):
    """Token strength and expiry window for family portal invitations."""
    __tablename__ = "invitation_management_policies"
    __table_args__ = versioned_table_args(
        "invitation_management_policies",
        _one_current_per_funeral_home("invitation_management_policies"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    token_length_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    expiration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    allow_multiple_invitations_per_email: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_phone_number: Mapped[bool] = mapped_column(Boolean, nullable=False)


# =============================================================================
# Invitations
# =============================================================================

class FamilyInvitation(VersionedMixin, Base):
    """
    Family portal invitation.

    Every status change (resend, accept, revoke) is a new version. Expiry is
    never stored: a PENDING row past token_expires_at reads as EXPIRED.
    """
    __tablename__ = "family_invitations"
    __table_args__ = versioned_table_args(
        "family_invitations",
        Index("idx_family_invitations_fh_current", "funeral_home_id", "is_current", "created_at"),
        Index("idx_family_invitations_case_email", "case_id", "recipient_email"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    case_id: Mapped[str] = mapped_column(String(100), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    relationship: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    token: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    token_expires_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvitationStatus.PENDING.value
    )
    sent_by: Mapped[str] = mapped_column(String(255), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)


# =============================================================================
# Memorial templates
# =============================================================================

class MemorialTemplate(VersionedMixin, Base):
    """
    Versioned memorial document template (service programs, prayer cards, ...).

    funeral_home_id NULL marks a system template shared by every funeral home.
    variables is derived from html_template on write.
    """
    __tablename__ = "memorial_templates"
    __table_args__ = versioned_table_args(
        "memorial_templates",
        Index("idx_memorial_templates_scope", "funeral_home_id", "category", "is_current"),
    )

    funeral_home_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TemplateStatus.DRAFT.value
    )

    # Content
    html_template: Mapped[str] = mapped_column(Text, nullable=False)
    css_styles: Mapped[str] = mapped_column(Text, nullable=False, default="")
    preview_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Print settings
    page_size: Mapped[str] = mapped_column(String(20), nullable=False)
    orientation: Mapped[str] = mapped_column(String(20), nullable=False)
    margin_top: Mapped[float] = mapped_column(Float, nullable=False)
    margin_right: Mapped[float] = mapped_column(Float, nullable=False)
    margin_bottom: Mapped[float] = mapped_column(Float, nullable=False)
    margin_left: Mapped[float] = mapped_column(Float, nullable=False)
    print_quality: Mapped[int] = mapped_column(Integer, nullable=False)

    variables: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)


# =============================================================================
# Cases, leads, notes
# =============================================================================

class Case(VersionedMixin, Base):
    """Funeral case. Finalization writes a new version with the GL reference."""
    __tablename__ = "cases"
    __table_args__ = versioned_table_args(
        "cases",
        Index("idx_cases_fh_current", "funeral_home_id", "is_current"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    decedent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    case_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CaseStatus.INQUIRY.value
    )
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lead_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Go ERP linkage
    go_contract_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gl_journal_entry_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    revenue_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Lead(VersionedMixin, Base):
    """Prospective family. Score is computed from the lead scoring policy at creation."""
    __tablename__ = "leads"
    __table_args__ = versioned_table_args(
        "leads",
        Index("idx_leads_fh_current", "funeral_home_id", "is_current"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeadStatus.NEW.value
    )
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    lead_type: Mapped[str] = mapped_column(String(50), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    converted_to_case_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class CaseNote(VersionedMixin, Base):
    """Internal staff note on a case; edits are new versions, deletes retire the key."""
    __tablename__ = "case_notes"
    __table_args__ = versioned_table_args(
        "case_notes",
        Index("idx_case_notes_case_current", "case_id", "is_current"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    case_id: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
