"""Enum definitions for application constants."""

from enum import Enum


class PolicyType(str, Enum):
    """Per-funeral-home configuration entities with SCD2 history."""
    LEAD_SCORING = "lead_scoring"
    NOTE_MANAGEMENT = "note_management"
    INVITATION_MANAGEMENT = "invitation_management"


class InvitationStatus(str, Enum):
    """
    Family portal invitation status.

    Only PENDING, ACCEPTED and REVOKED are ever stored. EXPIRED is derived on
    read from token_expires_at and never written back.
    """
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


class InvitationRole(str, Enum):
    PRIMARY_CONTACT = "PRIMARY_CONTACT"
    FAMILY_MEMBER = "FAMILY_MEMBER"


class CaseStatus(str, Enum):
    """
    Case lifecycle.

    inquiry → active → completed → archived
    Only active cases can be finalized (revenue recognized).
    """
    INQUIRY = "inquiry"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class CaseType(str, Enum):
    AT_NEED = "at_need"
    PRE_NEED = "pre_need"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    NURTURING = "nurturing"
    CONVERTED = "converted"
    LOST = "lost"
    ARCHIVED = "archived"


LEAD_STATUS_TRANSITIONS: dict[LeadStatus, frozenset[LeadStatus]] = {
    LeadStatus.NEW: frozenset({LeadStatus.CONTACTED, LeadStatus.LOST, LeadStatus.ARCHIVED}),
    LeadStatus.CONTACTED: frozenset(
        {LeadStatus.QUALIFIED, LeadStatus.NURTURING, LeadStatus.LOST, LeadStatus.ARCHIVED}
    ),
    LeadStatus.QUALIFIED: frozenset({LeadStatus.NURTURING, LeadStatus.CONVERTED, LeadStatus.LOST}),
    LeadStatus.NURTURING: frozenset({LeadStatus.CONVERTED, LeadStatus.LOST, LeadStatus.ARCHIVED}),
    LeadStatus.CONVERTED: frozenset({LeadStatus.ARCHIVED}),
    LeadStatus.LOST: frozenset({LeadStatus.ARCHIVED}),
    LeadStatus.ARCHIVED: frozenset(),
}


class LeadSource(str, Enum):
    WEBSITE = "website"
    PHONE = "phone"
    EMAIL = "email"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    EVENT = "event"
    DIRECT_MAIL = "direct_mail"
    OTHER = "other"


class LeadType(str, Enum):
    AT_NEED = "at_need"
    PRE_NEED = "pre_need"
    GENERAL_INQUIRY = "general_inquiry"


class TemplateCategory(str, Enum):
    SERVICE_PROGRAM = "service_program"
    PRAYER_CARD = "prayer_card"
    BOOKMARK = "bookmark"
    ACKNOWLEDGEMENT_CARD = "acknowledgement_card"
    MEMORIAL_FOLDER = "memorial_folder"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class ContractStatus(str, Enum):
    """Contract status as reported by the Go ERP."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


FINALIZABLE_CONTRACT_STATUSES = frozenset({ContractStatus.ACTIVE, ContractStatus.COMPLETED})
