"""Memorial templates router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_db
from funeral_core.db.enums import TemplateCategory
from funeral_core.schemas.template import (
    TemplateCreate,
    TemplateRead,
    TemplateStatusChange,
    TemplateUpdate,
    TemplateVariablesRequest,
    TemplateVariablesResponse,
)
from funeral_core.services import template_service
from funeral_core.services.template_variables import extract_template_variables

router = APIRouter()


@router.post("", response_model=TemplateRead, status_code=201)
def create_template(
    data: TemplateCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    template = template_service.create_template(db, data, actor)
    db.commit()
    return template


@router.get("", response_model=list[TemplateRead])
def list_templates(
    funeral_home_id: str = Query(default=""),
    category: TemplateCategory | None = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    """The funeral home's templates plus system templates, deprecated excluded."""
    return template_service.list_templates(
        db, funeral_home_id, category=category, include_drafts=not active_only
    )


@router.get("/pending", response_model=list[TemplateRead])
def list_pending_templates(
    funeral_home_id: str | None = None,
    db: Session = Depends(get_db),
):
    return template_service.list_pending_templates(db, funeral_home_id)


@router.post("/variables", response_model=TemplateVariablesResponse)
def extract_variables(data: TemplateVariablesRequest):
    """Placeholders used by a piece of template content."""
    return TemplateVariablesResponse(variables=extract_template_variables(data.content))


@router.get("/{business_key}", response_model=TemplateRead)
def get_template(business_key: str, db: Session = Depends(get_db)):
    return template_service.get_template(db, business_key)


@router.get("/{business_key}/history", response_model=list[TemplateRead])
def get_template_history(business_key: str, db: Session = Depends(get_db)):
    return template_service.get_template_history(db, business_key)


@router.get("/{business_key}/versions/{version}", response_model=TemplateRead)
def get_template_version(business_key: str, version: int, db: Session = Depends(get_db)):
    return template_service.get_template_version(db, business_key, version)


@router.patch("/{business_key}", response_model=TemplateRead)
def update_template(
    business_key: str,
    data: TemplateUpdate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    template = template_service.update_template(db, business_key, data, actor)
    db.commit()
    return template


@router.post("/{business_key}/status", response_model=TemplateRead)
def change_template_status(
    business_key: str,
    data: TemplateStatusChange,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Approve, deprecate or reactivate."""
    template = template_service.change_template_status(
        db, business_key, data.status, actor, reason=data.reason
    )
    db.commit()
    return template


@router.delete("/{business_key}", response_model=TemplateRead)
def retire_template(
    business_key: str,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    template = template_service.retire_template(db, business_key, actor)
    db.commit()
    return template
