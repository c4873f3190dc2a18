"""Convert a qualified lead into an active case with a Go ERP contract.

Same shape as case finalization: a validation gate (lead qualified, at least
one line item) before any mutation, then a best-effort saga whose local
steps are committed one by one:

    create_case -> create_contract (remote) -> link_contract -> convert_lead

Nothing is compensated. A failure after create_case returns an Err naming
the case (and contract, if created) left behind.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from funeral_core.core.errors import DomainError, NotFoundError, PersistenceError, ValidationError
from funeral_core.core.results import Ok, Result, StepTracker
from funeral_core.core.structured_logging import build_log_context
from funeral_core.db.enums import CaseStatus, LeadStatus
from funeral_core.schemas.case import CaseCreate, ConvertLeadResult
from funeral_core.schemas.contract import CreateContractCommand
from funeral_core.schemas.lead import ConvertLeadRequest
from funeral_core.services import case_service, lead_service
from funeral_core.services.go_backend import ContractPort

logger = logging.getLogger(__name__)

USE_CASE = "convert_lead_to_case_with_contract"


async def convert_lead_to_case_with_contract(
    db: Session,
    lead_business_key: str,
    request: ConvertLeadRequest,
    actor: str,
    contracts: ContractPort,
) -> Result[ConvertLeadResult]:
    tracker = StepTracker()

    try:
        lead = lead_service.leads.find_current(db, business_key=lead_business_key)
        if lead is None:
            raise NotFoundError(
                f"Lead not found: {lead_business_key}", entity_type="Lead", entity_id=lead_business_key
            )
        if lead.status != LeadStatus.QUALIFIED.value:
            raise ValidationError(
                f"Only qualified leads can be converted (lead is {lead.status})", field="status"
            )
        if not (request.services or request.products):
            raise ValidationError(
                "At least one service or product is required", field="line_items"
            )

        case = case_service.create_case(
            db,
            CaseCreate(
                funeral_home_id=lead.funeral_home_id,
                decedent_name=request.decedent_name,
                case_type=request.case_type,
                service_type=request.service_type,
                status=CaseStatus.ACTIVE,
            ),
            actor,
            lead_id=lead.business_key,
        )
        db.commit()
        tracker.done("create_case", case_id=case.business_key)

        contract = await contracts.create_contract(CreateContractCommand(
            case_id=case.business_key,
            services=request.services,
            products=request.products,
        ))
        tracker.done("create_contract", contract_id=contract.id)

        case_service.link_contract(db, case.business_key, contract.id, actor)
        db.commit()
        tracker.done("link_contract")

        lead_service.transition_lead_status(
            db,
            lead.business_key,
            LeadStatus.CONVERTED,
            actor,
            reason=f"Converted to case {case.business_key}",
            converted_to_case_id=case.business_key,
        )
        db.commit()
        tracker.done("convert_lead")

    except (DomainError, SQLAlchemyError) as exc:
        db.rollback()
        error = exc if isinstance(exc, DomainError) else PersistenceError(
            f"Storage failure converting lead {lead_business_key}: {exc}"
        )
        result = tracker.fail(error)
        context = build_log_context(actor_id=actor, business_key=lead_business_key, use_case=USE_CASE)
        if result.is_partial:
            logger.error(
                "Lead conversion partially completed (%s); reconcile %s: %s",
                ", ".join(result.completed_steps), result.artifacts, error.message,
                extra=context,
            )
        else:
            logger.info("Lead conversion rejected: %s", error.message, extra=context)
        return result

    logger.info(
        "Lead converted to case %s with contract %s",
        case.business_key, contract.id,
        extra=build_log_context(
            funeral_home_id=lead.funeral_home_id,
            actor_id=actor,
            business_key=lead_business_key,
            use_case=USE_CASE,
        ),
    )
    return Ok(ConvertLeadResult(
        lead_id=lead.business_key,
        case_id=case.business_key,
        contract_id=contract.id,
    ))
