"""In-memory Go ERP double for tests and local development.

Implements ContractPort and FinancialPort, records every call in order, and
can be told to fail a given method with a specific domain error.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from funeral_core.core.errors import DomainError, NotFoundError
from funeral_core.db.enums import ContractStatus
from funeral_core.schemas.contract import (
    Contract,
    ContractLineItem,
    CreateContractCommand,
    CreateJournalEntryCommand,
    GLAccount,
    JournalEntry,
)


@dataclass
class InMemoryGoBackend:
    contracts: dict[str, Contract] = field(default_factory=dict)
    gl_accounts: dict[str, GLAccount] = field(default_factory=dict)
    journal_entries: dict[str, JournalEntry] = field(default_factory=dict)
    journal_commands: dict[str, CreateJournalEntryCommand] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)
    failures: dict[str, DomainError] = field(default_factory=dict)

    # =========================================================================
    # Fixtures and inspection
    # =========================================================================

    def add_gl_account(self, account_number: str, name: str = "", type: str | None = None) -> GLAccount:
        account = GLAccount(
            id=f"gl_{account_number}", account_number=account_number, name=name, type=type
        )
        self.gl_accounts[account_number] = account
        return account

    def add_contract(
        self,
        case_id: str,
        status: ContractStatus = ContractStatus.ACTIVE,
        services: list[ContractLineItem] | None = None,
        products: list[ContractLineItem] | None = None,
        contract_id: str | None = None,
    ) -> Contract:
        services = services or []
        products = products or []
        contract = Contract(
            id=contract_id or f"contract_{uuid.uuid4().hex[:8]}",
            case_id=case_id,
            status=status,
            services=services,
            products=products,
            total_amount=sum((item.total_price for item in [*services, *products]), Decimal("0")),
        )
        self.contracts[contract.id] = contract
        return contract

    def fail_on(self, method: str, error: DomainError) -> None:
        self.failures[method] = error

    def calls_to(self, method: str) -> list[object]:
        return [argument for name, argument in self.calls if name == method]

    def _record(self, method: str, argument: object) -> None:
        self.calls.append((method, argument))
        if method in self.failures:
            raise self.failures[method]

    # =========================================================================
    # ContractPort
    # =========================================================================

    async def get_contract(self, contract_id: str) -> Contract:
        self._record("get_contract", contract_id)
        contract = self.contracts.get(contract_id)
        if contract is None:
            raise NotFoundError(
                f"Contract not found: {contract_id}", entity_type="Contract", entity_id=contract_id
            )
        return contract

    async def create_contract(self, command: CreateContractCommand) -> Contract:
        self._record("create_contract", command)
        return self.add_contract(
            command.case_id,
            status=ContractStatus.DRAFT,
            services=list(command.services),
            products=list(command.products),
        )

    # =========================================================================
    # FinancialPort
    # =========================================================================

    async def get_gl_account_by_number(self, account_number: str) -> GLAccount:
        self._record("get_gl_account_by_number", account_number)
        account = self.gl_accounts.get(account_number)
        if account is None:
            raise NotFoundError(
                f"GLAccount not found: {account_number}",
                entity_type="GLAccount",
                entity_id=account_number,
            )
        return account

    async def create_journal_entry(self, command: CreateJournalEntryCommand) -> JournalEntry:
        self._record("create_journal_entry", command)
        entry = JournalEntry(
            id=f"je_{uuid.uuid4().hex[:8]}",
            entry_number=f"JE-{len(self.journal_entries) + 1:05d}",
            description=command.description,
            status="draft",
            total_debit=command.total_debit,
            total_credit=command.total_credit,
        )
        self.journal_entries[entry.id] = entry
        self.journal_commands[entry.id] = command
        return entry

    async def post_journal_entry(self, journal_entry_id: str) -> None:
        self._record("post_journal_entry", journal_entry_id)
        entry = self.journal_entries.get(journal_entry_id)
        if entry is None:
            raise NotFoundError(
                f"Journal entry not found: {journal_entry_id}",
                entity_type="JournalEntry",
                entity_id=journal_entry_id,
            )
        self.journal_entries[journal_entry_id] = entry.model_copy(update={"status": "posted"})
