"""Invitation email composition and best-effort dispatch."""

import html
import logging

from funeral_core.core.config import settings
from funeral_core.core.errors import EmailError
from funeral_core.db.models import FamilyInvitation
from funeral_core.services.email_sender import EmailSender

logger = logging.getLogger(__name__)


def build_magic_link(token: str) -> str:
    return f"{settings.PORTAL_BASE_URL.rstrip('/')}/api/accept-invitation/{token}"


def build_invitation_email(invitation: FamilyInvitation) -> tuple[str, str]:
    """Return (subject, html body) for an invitation version."""
    name = html.escape(invitation.recipient_name)
    link = html.escape(build_magic_link(invitation.token), quote=True)
    expires = invitation.token_expires_at.strftime("%B %d, %Y")
    subject = "You're invited to the family portal"
    body = (
        f"<p>Dear {name},</p>"
        "<p>You have been invited to view arrangements and share memories in the "
        "family portal.</p>"
        f'<p><a href="{link}">Accept your invitation</a></p>'
        f"<p>This link expires on {expires}.</p>"
    )
    return subject, body


async def send_invitation_email(invitation: FamilyInvitation, sender: EmailSender) -> str | None:
    """
    Send the magic-link email. Never raises.

    Returns the provider message id, or None when sending failed (logged).
    """
    subject, body = build_invitation_email(invitation)
    try:
        message_id = await sender.send_email(
            to=invitation.recipient_email, subject=subject, html=body
        )
    except EmailError as exc:
        logger.warning(
            "Invitation email failed for %s v%s: %s",
            invitation.business_key, invitation.version, exc.message,
        )
        return None

    logger.info(
        "Invitation email sent for %s v%s (message %s)",
        invitation.business_key, invitation.version, message_id,
    )
    return message_id
