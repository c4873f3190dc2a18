"""Case service - versioned funeral cases.

Every status change, contract link and finalization writes a new version.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from funeral_core.core.errors import InvalidStateTransitionError, ValidationError
from funeral_core.db.enums import CaseStatus
from funeral_core.db.models import Case
from funeral_core.schemas.case import CaseCreate
from funeral_core.services.version_service import VersionedRepository
from funeral_core.utils.normalization import normalize_name

logger = logging.getLogger(__name__)

cases = VersionedRepository(Case)

CASE_STATUS_TRANSITIONS: dict[CaseStatus, frozenset[CaseStatus]] = {
    CaseStatus.INQUIRY: frozenset({CaseStatus.ACTIVE, CaseStatus.ARCHIVED}),
    CaseStatus.ACTIVE: frozenset({CaseStatus.COMPLETED, CaseStatus.ARCHIVED}),
    CaseStatus.COMPLETED: frozenset({CaseStatus.ARCHIVED}),
    CaseStatus.ARCHIVED: frozenset(),
}


def generate_case_business_key() -> str:
    return f"CASE_{uuid.uuid4().hex[:16]}"


def create_case(
    db: Session,
    data: CaseCreate,
    actor: str,
    lead_id: str | None = None,
) -> Case:
    """Create version 1 of a case."""
    decedent_name = normalize_name(data.decedent_name)
    if not decedent_name:
        raise ValidationError("decedent_name cannot be blank", field="decedent_name")

    case = Case(
        business_key=generate_case_business_key(),
        version=1,
        funeral_home_id=data.funeral_home_id,
        decedent_name=decedent_name,
        case_type=data.case_type.value,
        status=data.status.value,
        service_type=data.service_type,
        lead_id=lead_id,
        created_by=actor,
        updated_by=actor,
        reason="Case opened",
    )
    return cases.save(db, case)


def get_case(db: Session, business_key: str) -> Case:
    return cases.get_current(db, business_key=business_key)


def find_case(db: Session, business_key: str) -> Case | None:
    return cases.find_current(db, business_key=business_key)


def get_case_history(db: Session, business_key: str) -> list[Case]:
    return cases.get_history(db, business_key)


def list_cases(db: Session, funeral_home_id: str, status: CaseStatus | None = None) -> list[Case]:
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    query = (
        select(Case)
        .where(Case.is_current.is_(True))
        .where(Case.funeral_home_id == funeral_home_id)
    )
    if status is not None:
        query = query.where(Case.status == status.value)
    return list(db.execute(query.order_by(Case.created_at.desc())).scalars().all())


def change_case_status(
    db: Session,
    business_key: str,
    status: CaseStatus,
    actor: str,
    reason: str | None = None,
) -> Case:
    current = get_case(db, business_key)
    current_status = CaseStatus(current.status)
    if status not in CASE_STATUS_TRANSITIONS[current_status]:
        raise InvalidStateTransitionError(
            f"Case cannot move from {current_status.value} to {status.value}",
            from_state=current_status.value,
            to_state=status.value,
        )
    new_version = cases.next_version(current, actor=actor, reason=reason, status=status.value)
    return cases.save(db, new_version)


def link_contract(
    db: Session,
    business_key: str,
    go_contract_id: str,
    actor: str,
    reason: str | None = None,
) -> Case:
    """Attach a Go ERP contract to the case as a new version."""
    current = get_case(db, business_key)
    if current.status == CaseStatus.ARCHIVED.value:
        raise ValidationError("Cannot link a contract to an archived case", field="status")
    new_version = cases.next_version(
        current,
        actor=actor,
        reason=reason or f"Linked contract {go_contract_id}",
        go_contract_id=go_contract_id,
    )
    return cases.save(db, new_version)


def record_finalization(
    db: Session,
    current: Case,
    *,
    journal_entry_id: str,
    revenue_amount: Decimal,
    finalized_at: datetime,
    actor: str,
) -> Case:
    """Write the finalized version: completed, with GL reference and recognized revenue."""
    new_version = cases.next_version(
        current,
        actor=actor,
        reason=f"Finalized with journal entry {journal_entry_id}",
        status=CaseStatus.COMPLETED.value,
        gl_journal_entry_id=journal_entry_id,
        revenue_amount=revenue_amount,
        finalized_at=finalized_at,
        finalized_by=actor,
    )
    return cases.save(db, new_version)
