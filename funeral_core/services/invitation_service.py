"""Family invitation lifecycle with SCD2 history.

States:
    PENDING -> ACCEPTED   (terminal)
    PENDING -> REVOKED    (terminal)
    PENDING -> EXPIRED    (derived on read, never written)
    EXPIRED -> PENDING    (resend, as a new version)

Every transition writes a new version. Resend and create commit the version
before dispatching email, so a failed email never rolls back the invitation.
"""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from funeral_core.core.config import settings
from funeral_core.core.errors import InvalidStateTransitionError, NotFoundError, ValidationError
from funeral_core.core.structured_logging import build_log_context
from funeral_core.db.enums import InvitationStatus, PolicyType
from funeral_core.db.models import FamilyInvitation
from funeral_core.db.types import utcnow
from funeral_core.schemas.invitation import InvitationCreate
from funeral_core.services import invitation_email_service, policy_service
from funeral_core.services.email_sender import EmailSender
from funeral_core.services.version_service import VersionedRepository
from funeral_core.utils.normalization import normalize_name

logger = logging.getLogger(__name__)

invitations = VersionedRepository(FamilyInvitation)

DEFAULT_PAGE_SIZE = 50


def generate_invitation_business_key(now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"INV_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}"


def generate_token(byte_length: int) -> str:
    """Hex token from byte_length cryptographically random bytes."""
    return secrets.token_hex(byte_length)


# =============================================================================
# Status (computed)
# =============================================================================

def is_invitation_expired(invitation: FamilyInvitation, now: datetime | None = None) -> bool:
    """A stored PENDING invitation past its token expiry reads as expired."""
    if invitation.status != InvitationStatus.PENDING.value:
        return False
    return (now or utcnow()) > invitation.token_expires_at


def get_invitation_status(invitation: FamilyInvitation, now: datetime | None = None) -> InvitationStatus:
    """Derive effective status from stored status and expiry."""
    if is_invitation_expired(invitation, now):
        return InvitationStatus.EXPIRED
    return InvitationStatus(invitation.status)


# =============================================================================
# Reads
# =============================================================================

def get_invitation(db: Session, business_key: str, funeral_home_id: str) -> FamilyInvitation:
    """Current version, scoped to the funeral home (other homes see NotFound)."""
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    return invitations.get_current(db, business_key=business_key, funeral_home_id=funeral_home_id)


def get_invitation_history(db: Session, business_key: str, funeral_home_id: str) -> list[FamilyInvitation]:
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    return [
        version for version in invitations.get_history(db, business_key)
        if version.funeral_home_id == funeral_home_id
    ]


def has_active_invitation(db: Session, case_id: str, recipient_email: str) -> bool:
    """Current invitation for this case+email that is ACCEPTED or unexpired PENDING."""
    now = utcnow()
    count = db.execute(
        select(func.count(FamilyInvitation.id))
        .where(FamilyInvitation.is_current.is_(True))
        .where(FamilyInvitation.case_id == case_id)
        .where(func.lower(FamilyInvitation.recipient_email) == recipient_email.lower())
        .where(or_(
            FamilyInvitation.status == InvitationStatus.ACCEPTED.value,
            and_(
                FamilyInvitation.status == InvitationStatus.PENDING.value,
                FamilyInvitation.token_expires_at >= now,
            ),
        ))
    ).scalar()
    return bool(count)


def list_invitations(
    db: Session,
    funeral_home_id: str,
    status: InvitationStatus | None = None,
    case_id: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> list[FamilyInvitation]:
    """
    Current invitations for a funeral home, newest first.

    The status filter recomputes expiry: PENDING means unexpired, EXPIRED
    means stored PENDING past token_expires_at.
    """
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    if limit < 1 or limit > settings.INVITATION_PAGE_SIZE_MAX:
        raise ValidationError(
            f"limit must be between 1 and {settings.INVITATION_PAGE_SIZE_MAX}", field="limit"
        )
    if offset < 0:
        raise ValidationError("offset must be >= 0", field="offset")

    now = utcnow()
    query = (
        select(FamilyInvitation)
        .where(FamilyInvitation.is_current.is_(True))
        .where(FamilyInvitation.funeral_home_id == funeral_home_id)
    )
    if case_id:
        query = query.where(FamilyInvitation.case_id == case_id)

    if status == InvitationStatus.PENDING:
        query = query.where(
            FamilyInvitation.status == InvitationStatus.PENDING.value,
            FamilyInvitation.token_expires_at >= now,
        )
    elif status == InvitationStatus.EXPIRED:
        query = query.where(
            FamilyInvitation.status == InvitationStatus.PENDING.value,
            FamilyInvitation.token_expires_at < now,
        )
    elif status is not None:
        query = query.where(FamilyInvitation.status == status.value)

    query = (
        query.order_by(FamilyInvitation.created_at.desc(), FamilyInvitation.business_key)
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(query).scalars().all())


# =============================================================================
# Writes
# =============================================================================

async def create_invitation(
    db: Session,
    funeral_home_id: str,
    data: InvitationCreate,
    sent_by: str,
    sender: EmailSender,
) -> FamilyInvitation:
    """
    Issue version 1 of an invitation, commit, then email the magic link.

    Raises:
        NotFoundError: funeral home has no invitation policy
        ValidationError: duplicate active invitation or missing required phone
    """
    policy = policy_service.resolve_policy(db, PolicyType.INVITATION_MANAGEMENT, funeral_home_id)

    if policy.require_phone_number and not (data.recipient_phone or "").strip():
        raise ValidationError("recipient_phone is required by policy", field="recipient_phone")
    if not policy.allow_multiple_invitations_per_email and has_active_invitation(
        db, data.case_id, data.recipient_email
    ):
        raise ValidationError(
            f"An active invitation already exists for {data.recipient_email} on case {data.case_id}",
            field="recipient_email",
        )

    now = utcnow()
    invitation = FamilyInvitation(
        business_key=generate_invitation_business_key(now),
        version=1,
        funeral_home_id=funeral_home_id,
        case_id=data.case_id,
        recipient_email=data.recipient_email,
        recipient_name=normalize_name(data.recipient_name),
        recipient_phone=data.recipient_phone,
        relationship=data.relationship,
        role=data.role.value,
        token=generate_token(policy.token_length_bytes),
        token_expires_at=now + timedelta(days=policy.expiration_days),
        status=InvitationStatus.PENDING.value,
        sent_by=sent_by,
        created_by=sent_by,
        updated_by=sent_by,
        reason="Invitation sent",
    )
    invitations.save(db, invitation)
    db.commit()

    logger.info(
        "Invitation created",
        extra=build_log_context(
            funeral_home_id=funeral_home_id,
            actor_id=sent_by,
            business_key=invitation.business_key,
            use_case="create_invitation",
        ),
    )
    await invitation_email_service.send_invitation_email(invitation, sender)
    return invitation


async def resend_invitation(
    db: Session,
    business_key: str,
    funeral_home_id: str,
    sent_by: str,
    sender: EmailSender,
) -> FamilyInvitation:
    """
    Re-issue a PENDING or (computed) EXPIRED invitation as a new version.

    New token of the policy's byte length, expiry now + policy days, status
    PENDING. The version is committed before the email is attempted.
    """
    current = get_invitation(db, business_key, funeral_home_id)
    effective = get_invitation_status(current)
    if effective not in (InvitationStatus.PENDING, InvitationStatus.EXPIRED):
        raise InvalidStateTransitionError(
            f"Cannot resend invitation in status {effective.value}",
            from_state=effective.value,
            to_state=InvitationStatus.PENDING.value,
        )

    policy = policy_service.resolve_policy(db, PolicyType.INVITATION_MANAGEMENT, funeral_home_id)
    now = utcnow()
    resent = invitations.next_version(
        current,
        actor=sent_by,
        reason=f"Resent (was {effective.value})",
        token=generate_token(policy.token_length_bytes),
        token_expires_at=now + timedelta(days=policy.expiration_days),
        status=InvitationStatus.PENDING.value,
        sent_by=sent_by,
    )
    invitations.save(db, resent)
    db.commit()

    logger.info(
        "Invitation resent",
        extra=build_log_context(
            funeral_home_id=funeral_home_id,
            actor_id=sent_by,
            business_key=business_key,
            use_case="resend_invitation",
        ),
    )
    await invitation_email_service.send_invitation_email(resent, sender)
    return resent


def _require_pending(invitation: FamilyInvitation, target: InvitationStatus) -> None:
    effective = get_invitation_status(invitation)
    if effective != InvitationStatus.PENDING:
        raise InvalidStateTransitionError(
            f"Cannot move invitation from {effective.value} to {target.value}",
            from_state=effective.value,
            to_state=target.value,
        )


def _accept(db: Session, current: FamilyInvitation, actor: str) -> FamilyInvitation:
    _require_pending(current, InvitationStatus.ACCEPTED)
    accepted = invitations.next_version(
        current,
        actor=actor,
        reason="Invitation accepted",
        status=InvitationStatus.ACCEPTED.value,
        accepted_at=utcnow(),
    )
    return invitations.save(db, accepted)


def accept_invitation(db: Session, business_key: str, funeral_home_id: str, actor: str) -> FamilyInvitation:
    return _accept(db, get_invitation(db, business_key, funeral_home_id), actor)


def accept_invitation_by_token(db: Session, token: str) -> FamilyInvitation:
    """Magic-link acceptance: the token identifies the current version."""
    if not token:
        raise ValidationError("token is required", field="token")
    current = db.execute(
        select(FamilyInvitation)
        .where(FamilyInvitation.is_current.is_(True))
        .where(FamilyInvitation.token == token)
    ).scalar_one_or_none()
    if current is None:
        raise NotFoundError("Invitation not found for token", entity_type="FamilyInvitation")
    return _accept(db, current, current.recipient_email)


def revoke_invitation(db: Session, business_key: str, funeral_home_id: str, actor: str) -> FamilyInvitation:
    current = get_invitation(db, business_key, funeral_home_id)
    _require_pending(current, InvitationStatus.REVOKED)
    revoked = invitations.next_version(
        current,
        actor=actor,
        reason="Invitation revoked",
        status=InvitationStatus.REVOKED.value,
        revoked_at=utcnow(),
    )
    return invitations.save(db, revoked)
