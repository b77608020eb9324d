"""
Utility reconciliation endpoint.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_reconciliation_orchestrator
from app.core.logging import get_logger
from app.models.reconciliation import ReconciliationOutcome, ReconciliationResult
from app.schemas.reconciliation import ReconcileRequest
from app.services.reconciliation_service import ReconciliationOrchestrator

router = APIRouter(prefix="/utility", tags=["reconciliation"])
logger = get_logger(__name__)

OUTCOME_STATUS_CODES = {
    ReconciliationOutcome.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ReconciliationOutcome.UNSUPPORTED_CLIENT: status.HTTP_400_BAD_REQUEST,
    ReconciliationOutcome.UPSTREAM_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
}


def status_code_for(result: ReconciliationResult) -> int:
    """HTTP status for a result; business failures are still 200."""
    return OUTCOME_STATUS_CODES.get(result.outcome, status.HTTP_200_OK)


@router.post(
    "/reconcile",
    response_model=ReconciliationResult,
    responses={
        400: {"model": ReconciliationResult, "description": "Invalid issue id or unsupported client"},
        502: {"model": ReconciliationResult, "description": "Payment gateway unavailable"},
    },
)
async def reconcile_collection(
    request: ReconcileRequest,
    orchestrator: ReconciliationOrchestrator = Depends(get_reconciliation_orchestrator),
):
    """
    Reconcile a collection against the payment gateway.

    The caller states which issue (1 = Paid Acknowledged, 2 = Waiting for
    Acknowledge, 3 = Pending) it believes applies. Nothing changes unless
    the live gateway status agrees.
    """
    logger.info(
        "Reconcile request received",
        client_id=request.client_id,
        issue_id=request.issue_id,
        client_type=request.client_type.value,
    )

    result = await orchestrator.reconcile(request.to_claim())

    return JSONResponse(
        status_code=status_code_for(result),
        content=result.model_dump(by_alias=True, mode="json"),
    )
