"""Policy service - per-funeral-home configuration with SCD2 history.

Each funeral home has at most one current version per policy type. Lookups
always read the current row (no caching across calls), and there are no
implicit defaults: a funeral home that was never provisioned raises
NotFoundError. Default presets exist only for explicit provisioning.
"""

import logging
import uuid
from dataclasses import dataclass

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from funeral_core.core.errors import NotFoundError, ValidationError
from funeral_core.db.enums import LeadSource, PolicyType
from funeral_core.db.models import (
    InvitationManagementPolicy,
    LeadScoringPolicy,
    NoteManagementPolicy,
)
from funeral_core.db.versioning import VersionedMixin
from funeral_core.schemas.policy import PAYLOAD_SCHEMAS
from funeral_core.services.version_service import VersionedRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyDefinition:
    policy_type: PolicyType
    model: type[VersionedMixin]
    schema: type[BaseModel]
    repository: VersionedRepository


POLICIES: dict[PolicyType, PolicyDefinition] = {
    policy_type: PolicyDefinition(
        policy_type=policy_type,
        model=model,
        schema=PAYLOAD_SCHEMAS[policy_type],
        repository=VersionedRepository(model),
    )
    for policy_type, model in (
        (PolicyType.LEAD_SCORING, LeadScoringPolicy),
        (PolicyType.NOTE_MANAGEMENT, NoteManagementPolicy),
        (PolicyType.INVITATION_MANAGEMENT, InvitationManagementPolicy),
    )
}


DEFAULT_POLICY_PAYLOADS: dict[PolicyType, dict] = {
    PolicyType.LEAD_SCORING: {
        "at_need_initial_score": 80,
        "pre_need_initial_score": 30,
        "general_inquiry_score": 20,
        "hot_lead_threshold": 70,
        "warm_lead_threshold": 40,
        "cold_lead_threshold": 20,
        "inactive_threshold_days": 30,
        "enable_auto_archive": True,
        "archive_after_days": 90,
        "contact_method_bonus": 10,
        "referral_source_bonus": 15,
        "email_engagement_bonus": 5,
        "phone_engagement_bonus": 5,
        "require_phone_or_email": True,
        "require_first_name": True,
        "require_last_name": True,
        "preferred_sources": [LeadSource.REFERRAL.value],
        "disallowed_sources": [],
    },
    PolicyType.NOTE_MANAGEMENT: {
        "min_content_length": 1,
        "max_content_length": 10_000,
        "require_reason_on_edit": False,
        "allow_delete": True,
        "max_notes_per_case": None,
    },
    PolicyType.INVITATION_MANAGEMENT: {
        "token_length_bytes": 32,
        "expiration_days": 7,
        "allow_multiple_invitations_per_email": False,
        "require_phone_number": False,
    },
}


def get_definition(policy_type: PolicyType | str) -> PolicyDefinition:
    try:
        return POLICIES[PolicyType(policy_type)]
    except ValueError as exc:
        raise ValidationError(f"Unknown policy type: {policy_type}", field="policy_type") from exc


def validate_payload(policy_type: PolicyType, payload: dict) -> dict:
    """Validate against the policy schema and return the normalized payload."""
    schema = get_definition(policy_type).schema
    unknown = sorted(set(payload) - set(schema.model_fields))
    if unknown:
        raise ValidationError(
            f"Unknown {PolicyType(policy_type).value} policy field: {unknown[0]}", field=unknown[0]
        )
    try:
        return schema.model_validate(payload).model_dump()
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(
            f"Invalid {PolicyType(policy_type).value} policy: {first['msg']}", field=field
        ) from exc


def policy_payload(record: VersionedMixin) -> dict:
    """Payload fields of a policy version, without the funeral home scope."""
    return {key: value for key, value in record.payload().items() if key != "funeral_home_id"}


def generate_policy_business_key(policy_type: PolicyType) -> str:
    return f"POL_{policy_type.value.upper()}_{uuid.uuid4().hex[:12]}"


# =============================================================================
# Lookup
# =============================================================================

def resolve_policy(db: Session, policy_type: PolicyType, funeral_home_id: str):
    """
    Effective policy for a funeral home, read fresh on every call.

    Raises:
        ValidationError: funeral_home_id is empty
        NotFoundError: never provisioned (or retired)
    """
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    definition = get_definition(policy_type)
    record = definition.repository.find_current(db, funeral_home_id=funeral_home_id)
    if record is None:
        raise NotFoundError(
            f"No {definition.policy_type.value} policy provisioned for funeral home {funeral_home_id}",
            entity_type=definition.model.__name__,
            entity_id=funeral_home_id,
        )
    return record


def _latest_business_key(db: Session, definition: PolicyDefinition, funeral_home_id: str) -> str:
    """Business key of the funeral home's current policy, or of its most recent one if retired."""
    model = definition.model
    business_key = db.execute(
        select(model.business_key)
        .where(model.funeral_home_id == funeral_home_id)
        .order_by(model.is_current.desc(), model.valid_from.desc(), model.version.desc())
        .limit(1)
    ).scalar_one_or_none()
    if business_key is None:
        raise NotFoundError(
            f"No {definition.policy_type.value} policy history for funeral home {funeral_home_id}",
            entity_type=model.__name__,
            entity_id=funeral_home_id,
        )
    return business_key


def get_policy_history(db: Session, policy_type: PolicyType, funeral_home_id: str) -> list:
    definition = get_definition(policy_type)
    business_key = _latest_business_key(db, definition, funeral_home_id)
    return definition.repository.get_history(db, business_key)


def get_policy_version(db: Session, policy_type: PolicyType, funeral_home_id: str, version: int):
    definition = get_definition(policy_type)
    business_key = _latest_business_key(db, definition, funeral_home_id)
    return definition.repository.get_by_version(db, business_key, version)


# =============================================================================
# Writes
# =============================================================================

def create_policy(
    db: Session,
    policy_type: PolicyType,
    funeral_home_id: str,
    payload: dict,
    actor: str,
    reason: str | None = None,
):
    """Provision version 1 for a funeral home that has no current policy of this type."""
    definition = get_definition(policy_type)
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    if definition.repository.find_current(db, funeral_home_id=funeral_home_id) is not None:
        raise ValidationError(
            f"{definition.policy_type.value} policy already provisioned for funeral home "
            f"{funeral_home_id}; update it instead",
            field="funeral_home_id",
        )

    values = validate_payload(definition.policy_type, payload)
    record = definition.model(
        business_key=generate_policy_business_key(definition.policy_type),
        version=1,
        funeral_home_id=funeral_home_id,
        created_by=actor,
        updated_by=actor,
        reason=reason or "Initial policy",
        **values,
    )
    definition.repository.save(db, record)
    logger.info(
        "Provisioned %s policy %s for funeral home %s",
        definition.policy_type.value, record.business_key, funeral_home_id,
    )
    return record


def update_policy(
    db: Session,
    policy_type: PolicyType,
    funeral_home_id: str,
    changes: dict,
    actor: str,
    reason: str | None = None,
):
    """Write version N+1 with changes merged over the current payload."""
    if "funeral_home_id" in changes:
        raise ValidationError("Policy scope cannot change", field="funeral_home_id")
    definition = get_definition(policy_type)
    current = resolve_policy(db, definition.policy_type, funeral_home_id)

    existing = validate_payload(definition.policy_type, policy_payload(current))
    values = validate_payload(definition.policy_type, {**existing, **changes})
    if values == existing:
        raise ValidationError(f"{definition.policy_type.value} policy is unchanged", field="changes")
    new_version = definition.repository.next_version(current, actor=actor, reason=reason, **values)
    return definition.repository.save(db, new_version)


def retire_policy(db: Session, policy_type: PolicyType, funeral_home_id: str, actor: str):
    definition = get_definition(policy_type)
    current = resolve_policy(db, definition.policy_type, funeral_home_id)
    return definition.repository.delete(db, current.business_key, actor)


def restore_policy_version(
    db: Session,
    policy_type: PolicyType,
    funeral_home_id: str,
    target_version: int,
    actor: str,
):
    """
    Roll the current policy back to an earlier version's payload.

    Writes a NEW version; the target payload is re-validated against the
    current rules first.
    """
    definition = get_definition(policy_type)
    current = resolve_policy(db, definition.policy_type, funeral_home_id)
    target = definition.repository.get_by_version(db, current.business_key, target_version)
    validate_payload(definition.policy_type, policy_payload(target))
    return definition.repository.restore_version(db, current.business_key, target_version, actor)


def provision_default_policies(db: Session, funeral_home_id: str, actor: str) -> list[PolicyType]:
    """Create every missing policy type from the default presets. Returns the types created."""
    created: list[PolicyType] = []
    for policy_type, payload in DEFAULT_POLICY_PAYLOADS.items():
        definition = get_definition(policy_type)
        if definition.repository.find_current(db, funeral_home_id=funeral_home_id) is not None:
            continue
        create_policy(db, policy_type, funeral_home_id, payload, actor, reason="Default policy")
        created.append(policy_type)
    return created
