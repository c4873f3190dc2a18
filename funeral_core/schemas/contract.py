"""Schemas for the remote Go ERP contract and general ledger domains.

Field names follow the Go backend's snake_case JSON. Amounts are Decimal so
revenue sums stay exact.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from funeral_core.db.enums import ContractStatus


# =============================================================================
# Contracts
# =============================================================================

class ContractLineItem(BaseModel):
    """Service or product line. gl_account_id is the revenue account NUMBER (e.g. '4100')."""
    id: str | None = None
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Decimal("0")
    total_price: Decimal = Field(ge=0)
    gl_account_id: str = Field(min_length=1)


class Contract(BaseModel):
    id: str
    case_id: str
    status: ContractStatus
    services: list[ContractLineItem] = Field(default_factory=list)
    products: list[ContractLineItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    version: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def line_items(self) -> list[ContractLineItem]:
        return [*self.services, *self.products]


class CreateContractCommand(BaseModel):
    case_id: str
    services: list[ContractLineItem] = Field(default_factory=list)
    products: list[ContractLineItem] = Field(default_factory=list)


# =============================================================================
# General ledger
# =============================================================================

class GLAccount(BaseModel):
    id: str
    account_number: str
    name: str = ""
    type: str | None = None
    is_active: bool = True


class JournalEntryLineInput(BaseModel):
    """One debit or credit line; exactly one side is non-zero."""
    account_id: str
    account_number: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None


class CreateJournalEntryCommand(BaseModel):
    entry_date: datetime
    description: str
    lines: list[JournalEntryLineInput] = Field(min_length=2)

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


class JournalEntry(BaseModel):
    id: str
    entry_number: str | None = None
    description: str = ""
    status: str = "draft"
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    posted_at: datetime | None = None
