"""Lead service - versioned leads scored by the funeral home's policy."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from funeral_core.core.errors import InvalidStateTransitionError, ValidationError
from funeral_core.db.enums import LEAD_STATUS_TRANSITIONS, LeadSource, LeadStatus, LeadType, PolicyType
from funeral_core.db.models import Lead, LeadScoringPolicy
from funeral_core.schemas.lead import LeadCreate
from funeral_core.services import policy_service
from funeral_core.services.version_service import VersionedRepository
from funeral_core.utils.normalization import normalize_email, normalize_name, normalize_phone

logger = logging.getLogger(__name__)

leads = VersionedRepository(Lead)

MIN_SCORE = 0
MAX_SCORE = 100


def generate_lead_business_key() -> str:
    return f"LEAD_{uuid.uuid4().hex[:16]}"


# =============================================================================
# Scoring (pure)
# =============================================================================

def compute_lead_score(
    policy: LeadScoringPolicy,
    lead_type: LeadType,
    source: str,
    has_email: bool,
    has_phone: bool,
) -> int:
    """
    Initial score from the policy.

    Base by lead type, plus the contact-method bonus when both email and phone
    are given, the referral bonus for referrals, and a third of the referral
    bonus for preferred sources. Clamped to 0..100.
    """
    base = {
        LeadType.AT_NEED: policy.at_need_initial_score,
        LeadType.PRE_NEED: policy.pre_need_initial_score,
        LeadType.GENERAL_INQUIRY: policy.general_inquiry_score,
    }[LeadType(lead_type)]

    score = base
    if has_email and has_phone:
        score += policy.contact_method_bonus
    if source == LeadSource.REFERRAL.value:
        score += policy.referral_source_bonus
    if source in (policy.preferred_sources or []):
        score += policy.referral_source_bonus // 3
    return max(MIN_SCORE, min(MAX_SCORE, score))


def classify_lead_temperature(policy: LeadScoringPolicy, score: int) -> str:
    if score >= policy.hot_lead_threshold:
        return "hot"
    if score >= policy.warm_lead_threshold:
        return "warm"
    return "cold"


def validate_lead_against_policy(
    policy: LeadScoringPolicy,
    first_name: str,
    last_name: str,
    email: str | None,
    phone: str | None,
    source: str,
) -> None:
    if policy.require_first_name and not first_name:
        raise ValidationError("first_name is required", field="first_name")
    if policy.require_last_name and not last_name:
        raise ValidationError("last_name is required", field="last_name")
    if policy.require_phone_or_email and not (email or phone):
        raise ValidationError("Either phone or email is required", field="email")
    if source in (policy.disallowed_sources or []):
        raise ValidationError(f"Lead source '{source}' is not accepted", field="source")


# =============================================================================
# CRUD
# =============================================================================

def create_lead(db: Session, data: LeadCreate, actor: str) -> Lead:
    """Validate against the scoring policy, score, and write version 1."""
    policy = policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, data.funeral_home_id)

    first_name = normalize_name(data.first_name)
    last_name = normalize_name(data.last_name)
    email = normalize_email(data.email)
    try:
        phone = normalize_phone(data.phone)
    except ValueError as exc:
        raise ValidationError(str(exc), field="phone") from exc

    validate_lead_against_policy(policy, first_name, last_name, email, phone, data.source)
    score = compute_lead_score(policy, data.lead_type, data.source, bool(email), bool(phone))

    lead = Lead(
        business_key=generate_lead_business_key(),
        version=1,
        funeral_home_id=data.funeral_home_id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        status=LeadStatus.NEW.value,
        source=data.source,
        lead_type=data.lead_type.value,
        score=score,
        assigned_to=data.assigned_to,
        created_by=actor,
        updated_by=actor,
        reason=f"Scored {score} with policy {policy.business_key} v{policy.version}",
    )
    leads.save(db, lead)
    logger.info("Created lead %s with score %s", lead.business_key, score)
    return lead


def get_lead(db: Session, business_key: str) -> Lead:
    return leads.get_current(db, business_key=business_key)


def get_lead_history(db: Session, business_key: str) -> list[Lead]:
    return leads.get_history(db, business_key)


def list_leads(db: Session, funeral_home_id: str, status: LeadStatus | None = None) -> list[Lead]:
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    query = (
        select(Lead)
        .where(Lead.is_current.is_(True))
        .where(Lead.funeral_home_id == funeral_home_id)
    )
    if status is not None:
        query = query.where(Lead.status == status.value)
    return list(db.execute(query.order_by(Lead.score.desc(), Lead.created_at.desc())).scalars().all())


def get_lead_temperature(db: Session, business_key: str) -> tuple[Lead, str]:
    lead = get_lead(db, business_key)
    policy = policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, lead.funeral_home_id)
    return lead, classify_lead_temperature(policy, lead.score)


def transition_lead_status(
    db: Session,
    business_key: str,
    status: LeadStatus,
    actor: str,
    reason: str | None = None,
    converted_to_case_id: str | None = None,
) -> Lead:
    """
    Move a lead along the status table as a new version.

    Converting requires the case it was converted to.
    """
    current = get_lead(db, business_key)
    current_status = LeadStatus(current.status)
    if status not in LEAD_STATUS_TRANSITIONS[current_status]:
        raise InvalidStateTransitionError(
            f"Lead cannot move from {current_status.value} to {status.value}",
            from_state=current_status.value,
            to_state=status.value,
        )

    changes: dict = {"status": status.value}
    if status == LeadStatus.CONVERTED:
        if not converted_to_case_id:
            raise ValidationError(
                "Converting a lead requires the case it was converted to",
                field="converted_to_case_id",
            )
        changes["converted_to_case_id"] = converted_to_case_id

    new_version = leads.next_version(current, actor=actor, reason=reason, **changes)
    return leads.save(db, new_version)
