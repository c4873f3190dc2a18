"""Family invitations router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_db, get_email_sender
from funeral_core.db.enums import InvitationStatus
from funeral_core.db.models import FamilyInvitation
from funeral_core.schemas.invitation import InvitationCreate, InvitationListResponse, InvitationRead
from funeral_core.services import invitation_service
from funeral_core.services.email_sender import EmailSender

router = APIRouter()


def to_invitation_read(invitation: FamilyInvitation) -> InvitationRead:
    """Response with the computed status (EXPIRED is never stored)."""
    read = InvitationRead.model_validate(invitation)
    return read.model_copy(update={"status": invitation_service.get_invitation_status(invitation)})


@router.post("", response_model=InvitationRead, status_code=201)
async def create_invitation(
    data: InvitationCreate,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    sender: EmailSender = Depends(get_email_sender),
    db: Session = Depends(get_db),
):
    """Invite a family member; the magic-link email is best-effort."""
    invitation = await invitation_service.create_invitation(db, funeral_home_id, data, actor, sender)
    return to_invitation_read(invitation)


@router.get("", response_model=InvitationListResponse)
def list_invitations(
    funeral_home_id: str = Query(default=""),
    status: InvitationStatus | None = None,
    case_id: str | None = None,
    limit: int = Query(default=invitation_service.DEFAULT_PAGE_SIZE),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
):
    """Current invitations for a funeral home (scope is mandatory)."""
    items = invitation_service.list_invitations(
        db, funeral_home_id, status=status, case_id=case_id, limit=limit, offset=offset
    )
    return InvitationListResponse(
        items=[to_invitation_read(invitation) for invitation in items],
        limit=limit,
        offset=offset,
    )


@router.post("/accept-by-token/{token}", response_model=InvitationRead)
def accept_invitation_by_token(token: str, db: Session = Depends(get_db)):
    """Magic-link acceptance (no staff actor)."""
    invitation = invitation_service.accept_invitation_by_token(db, token)
    db.commit()
    return to_invitation_read(invitation)


@router.get("/{business_key}", response_model=InvitationRead)
def get_invitation(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    return to_invitation_read(invitation_service.get_invitation(db, business_key, funeral_home_id))


@router.get("/{business_key}/history", response_model=list[InvitationRead])
def get_invitation_history(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    versions = invitation_service.get_invitation_history(db, business_key, funeral_home_id)
    return [to_invitation_read(version) for version in versions]


@router.post("/{business_key}/resend", response_model=InvitationRead)
async def resend_invitation(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    sender: EmailSender = Depends(get_email_sender),
    db: Session = Depends(get_db),
):
    invitation = await invitation_service.resend_invitation(
        db, business_key, funeral_home_id, actor, sender
    )
    return to_invitation_read(invitation)


@router.post("/{business_key}/accept", response_model=InvitationRead)
def accept_invitation(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    invitation = invitation_service.accept_invitation(db, business_key, funeral_home_id, actor)
    db.commit()
    return to_invitation_read(invitation)


@router.post("/{business_key}/revoke", response_model=InvitationRead)
def revoke_invitation(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    invitation = invitation_service.revoke_invitation(db, business_key, funeral_home_id, actor)
    db.commit()
    return to_invitation_read(invitation)
