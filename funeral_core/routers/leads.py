"""Leads router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_contract_port, get_db
from funeral_core.core.results import unwrap
from funeral_core.db.enums import LeadStatus
from funeral_core.schemas.case import ConvertLeadResult
from funeral_core.schemas.lead import ConvertLeadRequest, LeadCreate, LeadRead, LeadStatusChange, LeadTemperature
from funeral_core.services import lead_service
from funeral_core.services.go_backend import ContractPort
from funeral_core.services.lead_conversion_service import convert_lead_to_case_with_contract

router = APIRouter()


@router.post("", response_model=LeadRead, status_code=201)
def create_lead(
    data: LeadCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Capture a lead, scored with the funeral home's current scoring policy."""
    lead = lead_service.create_lead(db, data, actor)
    db.commit()
    return lead


@router.get("", response_model=list[LeadRead])
def list_leads(
    funeral_home_id: str = Query(default=""),
    status: LeadStatus | None = None,
    db: Session = Depends(get_db),
):
    return lead_service.list_leads(db, funeral_home_id, status=status)


@router.get("/{business_key}", response_model=LeadRead)
def get_lead(business_key: str, db: Session = Depends(get_db)):
    return lead_service.get_lead(db, business_key)


@router.get("/{business_key}/history", response_model=list[LeadRead])
def get_lead_history(business_key: str, db: Session = Depends(get_db)):
    return lead_service.get_lead_history(db, business_key)


@router.get("/{business_key}/temperature", response_model=LeadTemperature)
def get_lead_temperature(business_key: str, db: Session = Depends(get_db)):
    lead, temperature = lead_service.get_lead_temperature(db, business_key)
    return LeadTemperature(business_key=lead.business_key, score=lead.score, temperature=temperature)


@router.post("/{business_key}/status", response_model=LeadRead)
def change_lead_status(
    business_key: str,
    data: LeadStatusChange,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    lead = lead_service.transition_lead_status(db, business_key, data.status, actor, reason=data.reason)
    db.commit()
    return lead


@router.post("/{business_key}/convert", response_model=ConvertLeadResult, status_code=201)
async def convert_lead(
    business_key: str,
    data: ConvertLeadRequest,
    actor: str = Depends(get_actor),
    contracts: ContractPort = Depends(get_contract_port),
    db: Session = Depends(get_db),
):
    """Open an active case and a contract for a qualified lead."""
    result = await convert_lead_to_case_with_contract(db, business_key, data, actor, contracts)
    return unwrap(result)
