"""Lead schemas."""

from pydantic import BaseModel, EmailStr, Field, field_validator

from funeral_core.db.enums import CaseType, LeadStatus, LeadType
from funeral_core.schemas.contract import ContractLineItem
from funeral_core.schemas.versioning import VersionRead


class LeadCreate(BaseModel):
    """Names may be blank only when the scoring policy does not require them."""
    funeral_home_id: str = Field(min_length=1, max_length=100)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    source: str = Field(min_length=1, max_length=50)
    lead_type: LeadType = LeadType.GENERAL_INQUIRY
    assigned_to: str | None = Field(default=None, max_length=255)

    @field_validator("source")
    @classmethod
    def normalize_source(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()


class LeadStatusChange(BaseModel):
    status: LeadStatus
    reason: str | None = Field(default=None, max_length=500)


class LeadRead(VersionRead):
    funeral_home_id: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    status: LeadStatus
    source: str
    lead_type: LeadType
    score: int
    assigned_to: str | None
    converted_to_case_id: str | None


class LeadTemperature(BaseModel):
    business_key: str
    score: int
    temperature: str


class ConvertLeadRequest(BaseModel):
    """Lead → case + remote contract. At least one service or product is required."""
    decedent_name: str = Field(min_length=1, max_length=255)
    case_type: CaseType = CaseType.AT_NEED
    service_type: str | None = Field(default=None, max_length=100)
    services: list[ContractLineItem] = Field(default_factory=list)
    products: list[ContractLineItem] = Field(default_factory=list)
