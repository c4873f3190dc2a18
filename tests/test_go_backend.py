"""Tests for the Go ERP HTTP adapter."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from funeral_core.core.errors import NetworkError, NotFoundError
from funeral_core.db.enums import ContractStatus
from funeral_core.schemas.contract import CreateJournalEntryCommand, JournalEntryLineInput
from funeral_core.services.go_backend import GoBackendClient


CONTRACT_BODY = {
    "id": "contract_1",
    "case_id": "CASE_1",
    "status": "active",
    "services": [{"description": "Service", "quantity": 1, "unit_price": 5000.0, "total_price": 5000.0, "gl_account_id": "4100"}],
    "products": [{"description": "Urn", "quantity": 2, "unit_price": 250.5, "total_price": 501.0, "gl_account_id": "4200"}],
    "total_amount": 5501.0,
}


def _client(handler, max_attempts=3):
    return GoBackendClient(
        "http://erp.test/",
        "secret",
        max_attempts=max_attempts,
        base_delay=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_contract_parses_body_and_sends_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=CONTRACT_BODY)

    contract = await _client(handler).get_contract("contract_1")

    assert seen["url"] == "http://erp.test/v1/contracts/contract_1"
    assert seen["auth"] == "Bearer secret"
    assert contract.status == ContractStatus.ACTIVE
    assert contract.products[0].total_price == Decimal("501.0")
    assert [item.gl_account_id for item in contract.line_items] == ["4100", "4200"]


@pytest.mark.asyncio
async def test_lookup_404_is_not_found():
    def handler(request):
        return httpx.Response(404, json={"error": "not found"})

    with pytest.raises(NotFoundError) as exc_info:
        await _client(handler).get_gl_account_by_number("9999")

    assert exc_info.value.entity_type == "GLAccount"
    assert exc_info.value.entity_id == "9999"


@pytest.mark.asyncio
async def test_idempotent_reads_are_retried():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"id": "gl_1200", "account_number": "1200", "name": "AR"})

    account = await _client(handler).get_gl_account_by_number("1200")

    assert calls["count"] == 2
    assert account.id == "gl_1200"


@pytest.mark.asyncio
async def test_server_error_after_retries_is_network_error():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(500)

    with pytest.raises(NetworkError) as exc_info:
        await _client(handler, max_attempts=2).get_contract("contract_1")

    assert calls["count"] == 2
    assert exc_info.value.context["http_status"] == 500
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_journal_entry_creation_is_not_retried():
    calls = {"count": 0}
    bodies = []

    def handler(request):
        calls["count"] += 1
        bodies.append(json.loads(request.content))
        return httpx.Response(503)

    command = CreateJournalEntryCommand(
        entry_date=datetime(2026, 1, 15, tzinfo=timezone.utc),
        description="Revenue recognition for case CASE_1",
        lines=[
            JournalEntryLineInput(account_id="gl_1200", account_number="1200", debit=Decimal("100.50")),
            JournalEntryLineInput(account_id="gl_4100", account_number="4100", credit=Decimal("100.50")),
        ],
    )

    with pytest.raises(NetworkError):
        await _client(handler).create_journal_entry(command)

    assert calls["count"] == 1
    assert bodies[0]["lines"][0] == {
        "account_id": "gl_1200", "debit": 100.5, "credit": 0.0, "description": None,
    }


@pytest.mark.asyncio
async def test_post_journal_entry_accepts_empty_body():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(204)

    await _client(handler).post_journal_entry("je_1")

    assert seen == {"method": "POST", "path": "/v1/financial/journal-entries/je_1/post"}


@pytest.mark.asyncio
async def test_transport_error_is_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        await _client(handler, max_attempts=1).get_contract("contract_1")


@pytest.mark.asyncio
async def test_malformed_body_is_network_error():
    def handler(request):
        return httpx.Response(200, json={"id": "contract_1"})

    with pytest.raises(NetworkError):
        await _client(handler).get_contract("contract_1")


@pytest.mark.asyncio
async def test_non_json_body_is_network_error():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(NetworkError):
        await _client(handler).get_contract("contract_1")
