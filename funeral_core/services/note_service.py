"""Note service - internal case notes gated by the note management policy."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from funeral_core.core.errors import ValidationError
from funeral_core.db.enums import PolicyType
from funeral_core.db.models import CaseNote, NoteManagementPolicy
from funeral_core.services import policy_service
from funeral_core.services.version_service import VersionedRepository

notes = VersionedRepository(CaseNote)


def generate_note_business_key() -> str:
    return f"NOTE_{uuid.uuid4().hex[:16]}"


def _check_content(policy: NoteManagementPolicy, content: str) -> str:
    content = content.strip()
    if len(content) < policy.min_content_length:
        raise ValidationError(
            f"Note must be at least {policy.min_content_length} characters", field="content"
        )
    if len(content) > policy.max_content_length:
        raise ValidationError(
            f"Note cannot exceed {policy.max_content_length} characters", field="content"
        )
    return content


def count_case_notes(db: Session, case_id: str) -> int:
    return db.execute(
        select(func.count(CaseNote.id))
        .where(CaseNote.is_current.is_(True))
        .where(CaseNote.case_id == case_id)
    ).scalar() or 0


def create_note(db: Session, funeral_home_id: str, case_id: str, content: str, actor: str) -> CaseNote:
    policy = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    content = _check_content(policy, content)
    if policy.max_notes_per_case is not None and count_case_notes(db, case_id) >= policy.max_notes_per_case:
        raise ValidationError(
            f"Case {case_id} already has the maximum of {policy.max_notes_per_case} notes",
            field="case_id",
        )

    note = CaseNote(
        business_key=generate_note_business_key(),
        version=1,
        funeral_home_id=funeral_home_id,
        case_id=case_id,
        content=content,
        created_by=actor,
        updated_by=actor,
    )
    return notes.save(db, note)


def get_note(db: Session, business_key: str, funeral_home_id: str) -> CaseNote:
    return notes.get_current(db, business_key=business_key, funeral_home_id=funeral_home_id)


def update_note(
    db: Session,
    business_key: str,
    funeral_home_id: str,
    content: str,
    actor: str,
    reason: str | None = None,
) -> CaseNote:
    policy = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    if policy.require_reason_on_edit and not (reason or "").strip():
        raise ValidationError("A reason is required when editing notes", field="reason")

    current = get_note(db, business_key, funeral_home_id)
    content = _check_content(policy, content)
    if content == current.content:
        raise ValidationError("Note content is unchanged", field="content")

    new_version = notes.next_version(current, actor=actor, reason=reason, content=content)
    return notes.save(db, new_version)


def delete_note(db: Session, business_key: str, funeral_home_id: str, actor: str) -> CaseNote:
    """Soft-retire the note; history stays readable."""
    policy = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    if not policy.allow_delete:
        raise ValidationError("Deleting notes is disabled by policy", field="business_key")
    get_note(db, business_key, funeral_home_id)
    return notes.delete(db, business_key, actor)


def list_case_notes(db: Session, funeral_home_id: str, case_id: str) -> list[CaseNote]:
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")
    return list(db.execute(
        select(CaseNote)
        .where(CaseNote.is_current.is_(True))
        .where(CaseNote.funeral_home_id == funeral_home_id)
        .where(CaseNote.case_id == case_id)
        .order_by(CaseNote.created_at.desc())
    ).scalars().all())


def get_note_history(db: Session, business_key: str, funeral_home_id: str) -> list[CaseNote]:
    return [
        version for version in notes.get_history(db, business_key)
        if version.funeral_home_id == funeral_home_id
    ]
