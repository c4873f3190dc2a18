"""Tests for finalize-case-with-GL-posting."""

from decimal import Decimal

import pytest

from funeral_core.core.errors import NetworkError, NotFoundError, PersistenceError, ValidationError
from funeral_core.core.results import Err, Ok
from funeral_core.db.enums import CaseStatus, ContractStatus
from funeral_core.schemas.case import CaseCreate
from funeral_core.schemas.contract import ContractLineItem
from funeral_core.services import case_service
from funeral_core.services.case_finalization_service import finalize_case_with_gl_posting


def _item(total, account):
    return ContractLineItem(description=f"Item {account}", unit_price=Decimal(total), total_price=Decimal(total), gl_account_id=account)


def _active_case(db, backend, contract_status=ContractStatus.ACTIVE, link=True):
    case = case_service.create_case(
        db,
        CaseCreate(funeral_home_id="fh_test", decedent_name="John Smith", status=CaseStatus.ACTIVE),
        "staff_1",
    )
    contract = backend.add_contract(
        case.business_key,
        status=contract_status,
        services=[_item(5000, "4100"), _item(2000, "4100")],
        products=[_item(8000, "4200")],
    )
    if link:
        case_service.link_contract(db, case.business_key, contract.id, "staff_1")
    db.commit()
    return case.business_key, contract


@pytest.mark.asyncio
async def test_finalize_posts_balanced_entry_and_completes_case(db, backend):
    case_key, _ = _active_case(db, backend)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_2", backend, backend)

    assert isinstance(result, Ok)
    value = result.value
    assert value.case_id == case_key
    assert value.total_amount == Decimal("15000")
    assert value.gl_accounts_posted == ["1200", "4100", "4200"]

    command = backend.journal_commands[value.journal_entry_id]
    debits = [(line.account_number, line.debit) for line in command.lines if line.debit]
    credits = [(line.account_number, line.credit) for line in command.lines if line.credit]
    assert debits == [("1200", Decimal("15000"))]
    assert credits == [("4100", Decimal("7000")), ("4200", Decimal("8000"))]
    assert command.total_debit == command.total_credit
    assert backend.journal_entries[value.journal_entry_id].status == "posted"

    case = case_service.get_case(db, case_key)
    assert case.version == 3
    assert case.status == CaseStatus.COMPLETED.value
    assert case.gl_journal_entry_id == value.journal_entry_id
    assert case.revenue_amount == Decimal("15000")
    assert case.finalized_by == "staff_2"


@pytest.mark.asyncio
async def test_steps_run_in_fixed_order(db, backend):
    case_key, contract = _active_case(db, backend)

    await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert [name for name, _ in backend.calls] == [
        "get_contract",
        "get_gl_account_by_number",
        "get_gl_account_by_number",
        "get_gl_account_by_number",
        "create_journal_entry",
        "post_journal_entry",
    ]
    assert backend.calls_to("get_contract") == [contract.id]
    assert backend.calls_to("get_gl_account_by_number") == ["1200", "4100", "4200"]


@pytest.mark.asyncio
async def test_second_finalize_is_rejected(db, backend):
    case_key, _ = _active_case(db, backend)
    await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationError)
    assert len(backend.calls_to("create_journal_entry")) == 1


@pytest.mark.asyncio
async def test_unknown_case_is_not_found(db, backend):
    result = await finalize_case_with_gl_posting(db, "CASE_missing", "staff_1", backend, backend)

    assert isinstance(result, Err)
    assert isinstance(result.error, NotFoundError)
    assert result.completed_steps == ()
    assert backend.calls == []


@pytest.mark.asyncio
async def test_inquiry_case_is_rejected_before_remote_calls(db, backend):
    case = case_service.create_case(
        db, CaseCreate(funeral_home_id="fh_test", decedent_name="John Smith"), "staff_1"
    )
    db.commit()

    result = await finalize_case_with_gl_posting(db, case.business_key, "staff_1", backend, backend)

    assert isinstance(result.error, ValidationError)
    assert result.is_partial is False
    assert backend.calls == []


@pytest.mark.asyncio
async def test_archived_case_is_rejected_without_side_effects(db, backend):
    case_key, _ = _active_case(db, backend)
    case_service.change_case_status(db, case_key, CaseStatus.ARCHIVED, "staff_1")
    db.commit()
    archived_version = case_service.get_case(db, case_key).version

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result.error, ValidationError)
    assert result.is_partial is False
    assert backend.calls == []
    assert backend.calls_to("create_journal_entry") == []
    case = case_service.get_case(db, case_key)
    assert case.version == archived_version
    assert case.status == CaseStatus.ARCHIVED.value
    assert case.gl_journal_entry_id is None


@pytest.mark.asyncio
async def test_receivable_account_is_listed_once(db, backend):
    case = case_service.create_case(
        db,
        CaseCreate(funeral_home_id="fh_test", decedent_name="John Smith", status=CaseStatus.ACTIVE),
        "staff_1",
    )
    contract = backend.add_contract(
        case.business_key,
        status=ContractStatus.ACTIVE,
        services=[_item(500, "1200"), _item(1000, "4100")],
    )
    case_service.link_contract(db, case.business_key, contract.id, "staff_1")
    db.commit()

    result = await finalize_case_with_gl_posting(db, case.business_key, "staff_1", backend, backend)

    assert isinstance(result, Ok)
    assert result.value.gl_accounts_posted == ["1200", "4100"]
    assert result.value.total_amount == Decimal("1500")


@pytest.mark.asyncio
async def test_case_without_contract_is_rejected(db, backend):
    case_key, _ = _active_case(db, backend, link=False)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result.error, ValidationError)
    assert result.error.field == "go_contract_id"
    assert backend.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ContractStatus.DRAFT, ContractStatus.PENDING_APPROVAL, ContractStatus.CANCELLED])
async def test_contract_must_be_active_or_completed(db, backend, status):
    case_key, _ = _active_case(db, backend, contract_status=status)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result.error, ValidationError)
    assert backend.calls_to("create_journal_entry") == []
    case = case_service.get_case(db, case_key)
    assert case.status == CaseStatus.ACTIVE.value
    assert case.version == 2


@pytest.mark.asyncio
async def test_completed_contract_is_finalizable(db, backend):
    case_key, _ = _active_case(db, backend, contract_status=ContractStatus.COMPLETED)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result, Ok)


@pytest.mark.asyncio
async def test_missing_gl_account_stops_before_journal_entry(db, backend):
    del backend.gl_accounts["4200"]
    case_key, _ = _active_case(db, backend)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result.error, NotFoundError)
    assert result.error.entity_id == "4200"
    assert backend.calls_to("create_journal_entry") == []


@pytest.mark.asyncio
async def test_contract_fetch_failure_passes_error_through(db, backend):
    case_key, _ = _active_case(db, backend)
    outage = NetworkError("Go backend unavailable")
    backend.fail_on("get_contract", outage)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert result.error is outage
    assert result.error.retryable is True
    assert result.completed_steps == ()


@pytest.mark.asyncio
async def test_post_failure_reports_partial_progress(db, backend):
    case_key, _ = _active_case(db, backend)
    backend.fail_on("post_journal_entry", NetworkError("post timed out"))

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result, Err)
    assert result.is_partial is True
    assert result.completed_steps == ("create_journal_entry",)
    journal_entry_id = result.artifacts["journal_entry_id"]
    assert journal_entry_id in backend.journal_entries
    assert backend.journal_entries[journal_entry_id].status == "draft"

    case = case_service.get_case(db, case_key)
    assert case.status == CaseStatus.ACTIVE.value
    assert case.gl_journal_entry_id is None


@pytest.mark.asyncio
async def test_case_update_failure_reports_posted_entry(db, backend, monkeypatch):
    case_key, _ = _active_case(db, backend)

    def broken_record_finalization(*args, **kwargs):
        raise PersistenceError("database unavailable")

    monkeypatch.setattr(case_service, "record_finalization", broken_record_finalization)

    result = await finalize_case_with_gl_posting(db, case_key, "staff_1", backend, backend)

    assert isinstance(result.error, PersistenceError)
    assert result.completed_steps == ("create_journal_entry", "post_journal_entry")
    assert backend.journal_entries[result.artifacts["journal_entry_id"]].status == "posted"
    assert case_service.get_case(db, case_key).status == CaseStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_custom_receivable_account(db, backend):
    backend.add_gl_account("1300", "Pre-need Receivable", "asset")
    case_key, _ = _active_case(db, backend)

    result = await finalize_case_with_gl_posting(
        db, case_key, "staff_1", backend, backend, ar_account_number="1300"
    )

    assert result.value.gl_accounts_posted[0] == "1300"
