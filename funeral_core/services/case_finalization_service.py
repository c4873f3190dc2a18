"""Finalize a case and recognize its revenue in the Go ERP general ledger.

Protocol (fixed order, later steps depend on earlier results):
    1. load case                      6. revenue breakdown by GL account
    2. case must be active            7. resolve GL accounts by number
    3. case must reference a contract 8. create journal entry (unposted)
    4. fetch contract                 9. post journal entry
    5. contract active or completed  10. write finalized case version

Steps 1-6 are a validation gate: any failure there returns before a single
remote or local mutation. Steps 8-10 are a best-effort saga with no
compensation. A failure after step 8 returns an Err whose completed_steps
and artifacts name the journal entry an operator has to reconcile.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from funeral_core.core.config import settings
from funeral_core.core.errors import DomainError, NotFoundError, PersistenceError, ValidationError
from funeral_core.core.results import Ok, Result, StepTracker
from funeral_core.core.structured_logging import build_log_context
from funeral_core.db.enums import FINALIZABLE_CONTRACT_STATUSES, CaseStatus
from funeral_core.db.types import utcnow
from funeral_core.schemas.case import FinalizeCaseResult
from funeral_core.schemas.contract import CreateJournalEntryCommand, GLAccount
from funeral_core.services import case_service
from funeral_core.services.go_backend import ContractPort, FinancialPort
from funeral_core.services.revenue_service import build_journal_lines, compute_revenue_breakdown

logger = logging.getLogger(__name__)

USE_CASE = "finalize_case_with_gl_posting"

STEP_CREATE_JOURNAL_ENTRY = "create_journal_entry"
STEP_POST_JOURNAL_ENTRY = "post_journal_entry"
STEP_UPDATE_CASE = "update_case"


async def finalize_case_with_gl_posting(
    db: Session,
    case_business_key: str,
    actor: str,
    contracts: ContractPort,
    financial: FinancialPort,
    ar_account_number: str | None = None,
) -> Result[FinalizeCaseResult]:
    ar_number = ar_account_number or settings.AR_ACCOUNT_NUMBER
    tracker = StepTracker()

    try:
        # Validation gate
        case = case_service.find_case(db, case_business_key)
        if case is None:
            raise NotFoundError(
                f"Case not found: {case_business_key}", entity_type="Case", entity_id=case_business_key
            )
        if case.status != CaseStatus.ACTIVE.value:
            raise ValidationError(f"Case cannot be finalized from status: {case.status}", field="status")
        if not case.go_contract_id:
            raise ValidationError(
                "Case must have a contract before finalization", field="go_contract_id"
            )

        contract = await contracts.get_contract(case.go_contract_id)
        if contract.status not in FINALIZABLE_CONTRACT_STATUSES:
            raise ValidationError(
                f"Contract must be active or completed. Current status: {contract.status.value}",
                field="contract_status",
            )
        breakdown = compute_revenue_breakdown(contract)

        ar_account = await financial.get_gl_account_by_number(ar_number)
        revenue_accounts: dict[str, GLAccount] = {}
        for account_number in breakdown.account_numbers:
            revenue_accounts[account_number] = await financial.get_gl_account_by_number(account_number)

        # Saga
        command = CreateJournalEntryCommand(
            entry_date=utcnow(),
            description=f"Revenue recognition for case {case.business_key}",
            lines=build_journal_lines(breakdown, ar_account, revenue_accounts, case.business_key),
        )
        journal_entry = await financial.create_journal_entry(command)
        tracker.done(STEP_CREATE_JOURNAL_ENTRY, journal_entry_id=journal_entry.id)

        await financial.post_journal_entry(journal_entry.id)
        tracker.done(STEP_POST_JOURNAL_ENTRY)

        finalized_at = utcnow()
        finalized = case_service.record_finalization(
            db,
            case,
            journal_entry_id=journal_entry.id,
            revenue_amount=breakdown.total,
            finalized_at=finalized_at,
            actor=actor,
        )
        db.commit()
        tracker.done(STEP_UPDATE_CASE, case_version=str(finalized.version))

    except DomainError as exc:
        return _fail(db, tracker, exc, case_business_key, actor)
    except SQLAlchemyError as exc:
        error = PersistenceError(f"Storage failure finalizing case {case_business_key}: {exc}")
        return _fail(db, tracker, error, case_business_key, actor)

    logger.info(
        "Case finalized with journal entry %s (total %s)",
        journal_entry.id, breakdown.total,
        extra=build_log_context(actor_id=actor, business_key=case_business_key, use_case=USE_CASE),
    )
    return Ok(FinalizeCaseResult(
        case_id=case.business_key,
        journal_entry_id=journal_entry.id,
        total_amount=breakdown.total,
        gl_accounts_posted=list(dict.fromkeys([ar_account.account_number, *breakdown.account_numbers])),
        finalized_at=finalized_at,
    ))


def _fail(db: Session, tracker: StepTracker, error: DomainError, case_business_key: str, actor: str):
    db.rollback()
    result = tracker.fail(error)
    context = build_log_context(
        actor_id=actor,
        business_key=case_business_key,
        use_case=USE_CASE,
        step=tracker.completed[-1] if tracker.completed else None,
    )
    if result.is_partial:
        logger.error(
            "Case finalization partially completed (%s); reconcile %s: %s",
            ", ".join(result.completed_steps), result.artifacts, error.message,
            extra=context,
        )
    else:
        logger.info("Case finalization rejected: %s", error.message, extra=context)
    return result