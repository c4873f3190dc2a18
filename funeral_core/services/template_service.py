"""Memorial template service - versioned document templates.

Content edits, settings edits and status changes each write a new version.
The variables list is always re-derived from html_template on write.
"""

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from funeral_core.core.errors import InvalidStateTransitionError, ValidationError
from funeral_core.db.enums import TemplateCategory, TemplateStatus
from funeral_core.db.models import MemorialTemplate
from funeral_core.schemas.template import TemplateCreate, TemplateUpdate
from funeral_core.services.template_variables import (
    extract_template_variables,
    find_unknown_variables,
)
from funeral_core.services.version_service import VersionedRepository

logger = logging.getLogger(__name__)

templates = VersionedRepository(MemorialTemplate)

TEMPLATE_STATUS_TRANSITIONS: dict[TemplateStatus, frozenset[TemplateStatus]] = {
    TemplateStatus.DRAFT: frozenset({TemplateStatus.ACTIVE, TemplateStatus.DEPRECATED}),
    TemplateStatus.ACTIVE: frozenset({TemplateStatus.DEPRECATED}),
    TemplateStatus.DEPRECATED: frozenset({TemplateStatus.ACTIVE}),
}


def generate_template_business_key() -> str:
    return f"TPL_{uuid.uuid4().hex[:16]}"


def _derive_variables(html_template: str, business_key: str) -> list[str]:
    variables = extract_template_variables(html_template)
    unknown = find_unknown_variables(variables)
    if unknown:
        logger.warning(
            "Template %s uses variables outside the catalog: %s",
            business_key, ", ".join(unknown),
        )
    return variables


def create_template(db: Session, data: TemplateCreate, actor: str) -> MemorialTemplate:
    """Create version 1 (draft). funeral_home_id None makes it a system template."""
    business_key = generate_template_business_key()
    template = MemorialTemplate(
        business_key=business_key,
        version=1,
        funeral_home_id=data.funeral_home_id,
        name=data.name.strip(),
        category=data.category.value,
        status=TemplateStatus.DRAFT.value,
        html_template=data.content.html_template,
        css_styles=data.content.css_styles,
        preview_image_url=data.content.preview_image_url,
        page_size=data.settings.page_size,
        orientation=data.settings.orientation,
        margin_top=data.settings.margin_top,
        margin_right=data.settings.margin_right,
        margin_bottom=data.settings.margin_bottom,
        margin_left=data.settings.margin_left,
        print_quality=data.settings.print_quality,
        variables=_derive_variables(data.content.html_template, business_key),
        created_by=actor,
        updated_by=actor,
        reason="Initial version",
    )
    return templates.save(db, template)


def get_template(db: Session, business_key: str) -> MemorialTemplate:
    return templates.get_current(db, business_key=business_key)


def get_template_history(db: Session, business_key: str) -> list[MemorialTemplate]:
    return templates.get_history(db, business_key)


def get_template_version(db: Session, business_key: str, version: int) -> MemorialTemplate:
    return templates.get_by_version(db, business_key, version)


def update_template(
    db: Session,
    business_key: str,
    data: TemplateUpdate,
    actor: str,
) -> MemorialTemplate:
    """Write a new version with any of name, content and settings replaced."""
    changes: dict = {}
    if data.name is not None:
        changes["name"] = data.name.strip()
    if data.content is not None:
        changes.update(data.content.model_dump())
        changes["variables"] = _derive_variables(data.content.html_template, business_key)
    if data.settings is not None:
        changes.update(data.settings.model_dump())
    if not changes:
        raise ValidationError("Nothing to update", field="body")

    current = get_template(db, business_key)
    if current.status == TemplateStatus.DEPRECATED.value:
        raise InvalidStateTransitionError(
            f"Template {business_key} is deprecated; reactivate it before editing",
            from_state=current.status,
        )
    new_version = templates.next_version(current, actor=actor, reason=data.reason, **changes)
    return templates.save(db, new_version)


def change_template_status(
    db: Session,
    business_key: str,
    status: TemplateStatus,
    actor: str,
    reason: str | None = None,
) -> MemorialTemplate:
    """Approve (draft → active), deprecate, or reactivate a template."""
    current = get_template(db, business_key)
    current_status = TemplateStatus(current.status)
    if status not in TEMPLATE_STATUS_TRANSITIONS[current_status]:
        raise InvalidStateTransitionError(
            f"Template cannot move from {current_status.value} to {status.value}",
            from_state=current_status.value,
            to_state=status.value,
        )
    new_version = templates.next_version(
        current,
        actor=actor,
        reason=reason or f"Status changed to {status.value} by {actor}",
        status=status.value,
    )
    return templates.save(db, new_version)


def retire_template(db: Session, business_key: str, actor: str) -> MemorialTemplate:
    return templates.delete(db, business_key, actor)


def list_templates(
    db: Session,
    funeral_home_id: str,
    category: TemplateCategory | None = None,
    include_drafts: bool = True,
) -> list[MemorialTemplate]:
    """
    Current templates visible to a funeral home: its own plus system templates.

    Deprecated templates are excluded. Ordered by name.
    """
    if not funeral_home_id:
        raise ValidationError("funeral_home_id is required", field="funeral_home_id")

    query = (
        select(MemorialTemplate)
        .where(MemorialTemplate.is_current.is_(True))
        .where(or_(
            MemorialTemplate.funeral_home_id == funeral_home_id,
            MemorialTemplate.funeral_home_id.is_(None),
        ))
        .where(MemorialTemplate.status != TemplateStatus.DEPRECATED.value)
    )
    if category is not None:
        query = query.where(MemorialTemplate.category == category.value)
    if not include_drafts:
        query = query.where(MemorialTemplate.status == TemplateStatus.ACTIVE.value)
    return list(db.execute(query.order_by(MemorialTemplate.name, MemorialTemplate.business_key)).scalars().all())


def list_pending_templates(db: Session, funeral_home_id: str | None) -> list[MemorialTemplate]:
    """Drafts awaiting approval; system drafts when no funeral home is given."""
    query = (
        select(MemorialTemplate)
        .where(MemorialTemplate.is_current.is_(True))
        .where(MemorialTemplate.status == TemplateStatus.DRAFT.value)
    )
    if funeral_home_id:
        query = query.where(MemorialTemplate.funeral_home_id == funeral_home_id)
    else:
        query = query.where(MemorialTemplate.funeral_home_id.is_(None))
    return list(db.execute(query.order_by(MemorialTemplate.name)).scalars().all())
