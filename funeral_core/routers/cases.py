"""Cases router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_contract_port, get_db, get_financial_port
from funeral_core.core.results import unwrap
from funeral_core.db.enums import CaseStatus
from funeral_core.schemas.case import CaseContractLink, CaseCreate, CaseRead, CaseStatusChange, FinalizeCaseResult
from funeral_core.services import case_service
from funeral_core.services.case_finalization_service import finalize_case_with_gl_posting
from funeral_core.services.go_backend import ContractPort, FinancialPort

router = APIRouter()


@router.post("", response_model=CaseRead, status_code=201)
def create_case(
    data: CaseCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    case = case_service.create_case(db, data, actor)
    db.commit()
    return case


@router.get("", response_model=list[CaseRead])
def list_cases(
    funeral_home_id: str = Query(default=""),
    status: CaseStatus | None = None,
    db: Session = Depends(get_db),
):
    return case_service.list_cases(db, funeral_home_id, status=status)


@router.get("/{business_key}", response_model=CaseRead)
def get_case(business_key: str, db: Session = Depends(get_db)):
    return case_service.get_case(db, business_key)


@router.get("/{business_key}/history", response_model=list[CaseRead])
def get_case_history(business_key: str, db: Session = Depends(get_db)):
    return case_service.get_case_history(db, business_key)


@router.post("/{business_key}/status", response_model=CaseRead)
def change_case_status(
    business_key: str,
    data: CaseStatusChange,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    case = case_service.change_case_status(db, business_key, data.status, actor, reason=data.reason)
    db.commit()
    return case


@router.post("/{business_key}/contract", response_model=CaseRead)
def link_contract(
    business_key: str,
    data: CaseContractLink,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Reference an existing Go ERP contract from the case."""
    case = case_service.link_contract(db, business_key, data.go_contract_id, actor, reason=data.reason)
    db.commit()
    return case


@router.post("/{business_key}/finalize", response_model=FinalizeCaseResult)
async def finalize_case(
    business_key: str,
    actor: str = Depends(get_actor),
    contracts: ContractPort = Depends(get_contract_port),
    financial: FinancialPort = Depends(get_financial_port),
    db: Session = Depends(get_db),
):
    """
    Post the case's revenue to the general ledger and complete the case.

    Failures after the journal entry was created answer with the completed
    steps and the artifacts that need reconciliation.
    """
    result = await finalize_case_with_gl_posting(db, business_key, actor, contracts, financial)
    return unwrap(result)
