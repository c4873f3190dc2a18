"""Case schemas and cross-domain orchestration results."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from funeral_core.db.enums import CaseStatus, CaseType
from funeral_core.schemas.versioning import VersionRead


class CaseCreate(BaseModel):
    funeral_home_id: str = Field(min_length=1, max_length=100)
    decedent_name: str = Field(min_length=1, max_length=255)
    case_type: CaseType = CaseType.AT_NEED
    service_type: str | None = Field(default=None, max_length=100)
    status: CaseStatus = CaseStatus.INQUIRY


class CaseStatusChange(BaseModel):
    status: CaseStatus
    reason: str | None = Field(default=None, max_length=500)


class CaseContractLink(BaseModel):
    go_contract_id: str = Field(min_length=1, max_length=100)
    reason: str | None = Field(default=None, max_length=500)


class CaseRead(VersionRead):
    funeral_home_id: str
    decedent_name: str
    case_type: CaseType
    status: CaseStatus
    service_type: str | None
    lead_id: str | None
    go_contract_id: str | None
    gl_journal_entry_id: str | None
    revenue_amount: Decimal | None
    finalized_at: datetime | None
    finalized_by: str | None


# =============================================================================
# Orchestration results (never persisted)
# =============================================================================

class FinalizeCaseResult(BaseModel):
    case_id: str
    journal_entry_id: str
    total_amount: Decimal
    gl_accounts_posted: list[str]
    finalized_at: datetime


class ConvertLeadResult(BaseModel):
    lead_id: str
    case_id: str
    contract_id: str
