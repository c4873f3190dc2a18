"""Go ERP ports (contracts + general ledger) and the httpx adapter.

Orchestrators depend on the ContractPort / FinancialPort protocols only. The
production adapter maps HTTP 404 on lookups to NotFoundError and every other
failure (transport error, non-2xx, malformed body) to NetworkError.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from funeral_core.core.config import settings
from funeral_core.core.errors import NetworkError, NotFoundError
from funeral_core.schemas.contract import (
    Contract,
    ContractLineItem,
    CreateContractCommand,
    CreateJournalEntryCommand,
    GLAccount,
    JournalEntry,
)
from funeral_core.services.http_service import request_with_retries

logger = logging.getLogger(__name__)


class ContractPort(Protocol):
    async def get_contract(self, contract_id: str) -> Contract:
        """Raises NotFoundError or NetworkError."""

    async def create_contract(self, command: CreateContractCommand) -> Contract:
        """Raises NetworkError."""


class FinancialPort(Protocol):
    async def get_gl_account_by_number(self, account_number: str) -> GLAccount:
        """Raises NotFoundError or NetworkError."""

    async def create_journal_entry(self, command: CreateJournalEntryCommand) -> JournalEntry:
        """Create an unposted entry. Raises NetworkError."""

    async def post_journal_entry(self, journal_entry_id: str) -> None:
        """Commit an entry to the ledger. Raises NetworkError."""


def _money(value: Decimal) -> float:
    return float(value)


def _line_item_body(item: ContractLineItem) -> dict:
    return {
        "description": item.description,
        "quantity": item.quantity,
        "unit_price": _money(item.unit_price),
        "total_price": _money(item.total_price),
        "gl_account_id": item.gl_account_id,
    }


class GoBackendClient:
    """HTTP adapter for the Go ERP. Implements ContractPort and FinancialPort."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        max_attempts: int | None = None,
        base_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.GO_BACKEND_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.GO_BACKEND_API_KEY
        self.timeout = timeout or settings.GO_BACKEND_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.GO_BACKEND_MAX_ATTEMPTS
        self.base_delay = base_delay
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        json: dict | None = None,
        not_found: tuple[str, str] | None = None,
        idempotent: bool = True,
    ) -> dict:
        """
        Send one request (retried only when idempotent) and return the JSON body.

        not_found: (entity_type, entity_id) to raise NotFoundError on HTTP 404.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:

                async def request_fn() -> httpx.Response:
                    return await client.request(method, path, json=json, headers=self._headers())

                response = await request_with_retries(
                    request_fn,
                    max_attempts=self.max_attempts if idempotent else 1,
                    base_delay=self.base_delay,
                    label=f"Go backend {action}",
                )
        except httpx.RequestError as exc:
            raise NetworkError(f"Failed to {action}: {exc}") from exc

        if response.status_code == 404 and not_found is not None:
            entity_type, entity_id = not_found
            raise NotFoundError(
                f"{entity_type} not found: {entity_id}",
                entity_type=entity_type,
                entity_id=entity_id,
            )
        if not response.is_success:
            raise NetworkError(
                f"Failed to {action}: HTTP {response.status_code}",
                http_status=response.status_code,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"Failed to {action}: response is not JSON") from exc

    @staticmethod
    def _parse(model, data: dict, action: str):
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise NetworkError(f"Failed to {action}: malformed response ({exc.error_count()} errors)") from exc

    # =========================================================================
    # ContractPort
    # =========================================================================

    async def get_contract(self, contract_id: str) -> Contract:
        action = "get contract"
        data = await self._request(
            "GET", f"/v1/contracts/{contract_id}",
            action=action, not_found=("Contract", contract_id),
        )
        return self._parse(Contract, data, action)

    async def create_contract(self, command: CreateContractCommand) -> Contract:
        action = "create contract"
        body = {
            "case_id": command.case_id,
            "services": [_line_item_body(item) for item in command.services],
            "products": [_line_item_body(item) for item in command.products],
        }
        data = await self._request("POST", "/v1/contracts", action=action, json=body, idempotent=False)
        return self._parse(Contract, data, action)

    # =========================================================================
    # FinancialPort
    # =========================================================================

    async def get_gl_account_by_number(self, account_number: str) -> GLAccount:
        action = "get GL account by number"
        data = await self._request(
            "GET", f"/v1/financial/gl-accounts/by-number/{account_number}",
            action=action, not_found=("GLAccount", account_number),
        )
        return self._parse(GLAccount, data, action)

    async def create_journal_entry(self, command: CreateJournalEntryCommand) -> JournalEntry:
        action = "create journal entry"
        body = {
            "entry_date": command.entry_date.isoformat(),
            "description": command.description,
            "lines": [
                {
                    "account_id": line.account_id,
                    "debit": _money(line.debit),
                    "credit": _money(line.credit),
                    "description": line.description,
                }
                for line in command.lines
            ],
        }
        data = await self._request(
            "POST", "/v1/financial/journal-entries", action=action, json=body, idempotent=False
        )
        return self._parse(JournalEntry, data, action)

    async def post_journal_entry(self, journal_entry_id: str) -> None:
        await self._request(
            "POST", f"/v1/financial/journal-entries/{journal_entry_id}/post",
            action="post journal entry", idempotent=False,
        )
        logger.info("Posted journal entry %s", journal_entry_id)
