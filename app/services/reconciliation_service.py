"""
Reconciliation of internal collection records against the payment gateway.

A reconciliation runs a fixed sequence of steps. Each step either returns
None to let the next one run, or a terminal ReconciliationResult that is
handed straight back to the caller. Expected business conditions never
raise; only infrastructure faults escape, after being logged.

The collection record is updated at most once, and only after the gateway
has confirmed the payment (status 50) or accepted a dispute.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

from app.core.config import get_settings
from app.core.logging import get_logger, log_business_event
from app.models.collection import BillLink, CollectionRecord, SubmissionLog
from app.models.gateway import (
    DisputeRequest,
    PaymentStatusRequest,
    PaymentStatusResponse,
)
from app.models.reconciliation import (
    CollectionUpdateInfo,
    DisputeInfo,
    IssueClaim,
    IssueMatchInfo,
    PaymentStatusInfo,
    ReconciliationOutcome,
    ReconciliationResult,
)
from app.services.issue_status_map import PAID_ACKNOWLEDGED, IssueStatusMap, issue_status_map
from app.services.ports import (
    BillLinkStore,
    CollectionStore,
    DisputeGatewayClient,
    PaymentGatewayClient,
    PaymentLogStore,
)

logger = get_logger(__name__)

UPDATE_FAILED_DETAIL = "Collection table update failed. Zero rows affected."


@dataclass
class ReconciliationContext:
    """Values accumulated by the steps of a single reconciliation."""

    claim: IssueClaim
    log: Any
    record: Optional[CollectionRecord] = None
    bill_link: Optional[BillLink] = None
    submission_log: Optional[SubmissionLog] = None
    status_request: Optional[PaymentStatusRequest] = None
    status_response: Optional[PaymentStatusResponse] = None
    issue_match: Optional[IssueMatchInfo] = None
    payment_status: Optional[PaymentStatusInfo] = None

    @property
    def collection_id(self) -> Optional[int]:
        return self.record.collection_id if self.record else None

    def finish(
        self,
        outcome: ReconciliationOutcome,
        message: str,
        success: bool = False,
        dispute: Optional[DisputeInfo] = None,
        collection_update: Optional[CollectionUpdateInfo] = None,
    ) -> ReconciliationResult:
        return ReconciliationResult(
            success=success,
            message=message,
            outcome=outcome,
            issue_match=self.issue_match,
            payment_status=self.payment_status,
            dispute=dispute,
            collection_update=collection_update,
        )


Step = Callable[[ReconciliationContext], Awaitable[Optional[ReconciliationResult]]]


class ReconciliationOrchestrator:
    """Confirms a collection against the gateway, disputing when needed."""

    def __init__(
        self,
        collection_store: CollectionStore,
        bill_link_store: BillLinkStore,
        payment_log_store: PaymentLogStore,
        payment_gateway: PaymentGatewayClient,
        dispute_gateway: DisputeGatewayClient,
        issue_map: IssueStatusMap = issue_status_map,
        channel_id: Optional[str] = None,
        supported_client_types: Optional[Sequence[str]] = None,
    ):
        settings = get_settings()
        self.collection_store = collection_store
        self.bill_link_store = bill_link_store
        self.payment_log_store = payment_log_store
        self.payment_gateway = payment_gateway
        self.dispute_gateway = dispute_gateway
        self.issue_map = issue_map
        self.channel_id = channel_id or settings.gateway_channel_id
        if supported_client_types is None:
            supported_client_types = settings.supported_client_types
        self.supported_client_types = {c.upper() for c in supported_client_types}

        self.steps: Tuple[Step, ...] = (
            self._validate_client_type,
            self._validate_issue_id,
            self._resolve_collection,
            self._resolve_bill_link,
            self._resolve_reference_number,
            self._query_payment_status,
            self._match_issue,
            self._act_on_status,
        )

    async def reconcile(self, claim: IssueClaim) -> ReconciliationResult:
        """
        Reconcile one collection.

        Args:
            claim: Requested issue id plus the fields identifying the collection

        Returns:
            The result of the first step that terminated the pipeline

        Raises:
            Exception: Any unexpected store or infrastructure fault, unchanged
        """
        ctx = ReconciliationContext(
            claim=claim,
            log=logger.bind(
                client_id=claim.key.client_id,
                client_type=claim.client_type.value,
                requested_issue_id=claim.requested_issue_id,
            ),
        )
        ctx.log.info("Reconciliation started", coll_from=claim.key.coll_from)

        result: Optional[ReconciliationResult] = None
        for step in self.steps:
            try:
                result = await step(ctx)
            except Exception as e:
                ctx.log.error(
                    "Reconciliation aborted by unexpected error",
                    step=step.__name__.lstrip("_"),
                    collection_id=ctx.collection_id,
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
                raise
            if result is not None:
                break

        self._log_outcome(ctx, result)
        return result

    # Steps

    async def _validate_client_type(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        client_type = ctx.claim.client_type.value
        if client_type in self.supported_client_types:
            return None
        return ctx.finish(
            ReconciliationOutcome.UNSUPPORTED_CLIENT,
            f"Client type '{client_type}' is not supported for reconciliation.",
        )

    async def _validate_issue_id(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        issue_id = ctx.claim.requested_issue_id
        if self.issue_map.status_for(issue_id) is not None:
            return None
        return ctx.finish(
            ReconciliationOutcome.VALIDATION_FAILED,
            f"Invalid IssueId '{issue_id}'. Valid values: {self.issue_map.describe_valid_issues()}.",
        )

    async def _resolve_collection(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        record = await self.collection_store.find(ctx.claim.key)
        if record is None:
            return ctx.finish(
                ReconciliationOutcome.NOT_FOUND,
                "No collection record found for the given request.",
            )
        ctx.record = record
        ctx.log = ctx.log.bind(collection_id=record.collection_id)
        return None

    async def _resolve_bill_link(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        collection_id = ctx.collection_id
        bill_link = await self.bill_link_store.find_by_collection(collection_id)
        if bill_link is None:
            return ctx.finish(
                ReconciliationOutcome.NOT_FOUND,
                f"No bill link record found for CollectionId={collection_id}.",
            )
        if not (bill_link.transaction_id or "").strip():
            return ctx.finish(
                ReconciliationOutcome.NOT_FOUND,
                f"TransactionId is missing for CollectionId={collection_id}. "
                "Cannot resolve RefNo from the payment submit log.",
            )
        ctx.bill_link = bill_link
        return None

    async def _resolve_reference_number(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        transaction_id = ctx.bill_link.transaction_id
        submission_log = await self.payment_log_store.find_by_transaction(transaction_id)
        if submission_log is None or not (submission_log.reference_number or "").strip():
            return ctx.finish(
                ReconciliationOutcome.NOT_FOUND,
                f"No PaymentSubmit log found for TransactionId='{transaction_id}' today. "
                f"RefNo cannot be resolved for CollectionId={ctx.collection_id}.",
            )
        ctx.submission_log = submission_log
        ctx.log.info(
            "RefNo resolved",
            transaction_id=transaction_id,
            reference_number=submission_log.reference_number,
            request_id=submission_log.request_id,
        )
        return None

    async def _query_payment_status(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        ctx.status_request = PaymentStatusRequest(
            account_reference=ctx.bill_link.account_reference,
            channel_id=self.channel_id,
            reference_number=ctx.submission_log.reference_number,
            transaction_id=ctx.bill_link.transaction_id,
        )
        response = await self.payment_gateway.query_status(ctx.status_request)

        if response is None:
            return ctx.finish(
                ReconciliationOutcome.UPSTREAM_UNAVAILABLE,
                "Payment status API call failed or returned no response.",
            )

        ctx.status_response = response
        if not response.is_successful:
            ctx.payment_status = self._payment_status_info(response)
            return ctx.finish(
                ReconciliationOutcome.GATEWAY_REJECTED,
                "Payment status API returned an unsuccessful response.",
            )
        return None

    async def _match_issue(self, ctx: ReconciliationContext) -> Optional[ReconciliationResult]:
        requested_issue_id = ctx.claim.requested_issue_id
        actual_status = ctx.status_response.result.status_code or ""
        actual_issue_id = self.issue_map.issue_for(actual_status)
        actual_label = self.issue_map.label_for(actual_status)
        is_matched = actual_issue_id is not None and actual_issue_id == requested_issue_id

        ctx.issue_match = IssueMatchInfo(
            requested_issue_id=requested_issue_id,
            actual_issue_id=actual_issue_id,
            is_matched=is_matched,
            actual_status=actual_status,
            actual_label=actual_label,
        )
        ctx.payment_status = self._payment_status_info(ctx.status_response)

        if is_matched:
            return None

        actual_issue_text = str(actual_issue_id) if actual_issue_id is not None else "unknown"
        return ctx.finish(
            ReconciliationOutcome.ISSUE_MISMATCH,
            f"Issue mismatch: you submitted IssueId={requested_issue_id} "
            f"but the actual payment status is '{actual_status}' "
            f"({actual_label}, IssueId={actual_issue_text}). No changes were made.",
        )

    async def _act_on_status(self, ctx: ReconciliationContext) -> ReconciliationResult:
        status_code = ctx.issue_match.actual_status
        if status_code == PAID_ACKNOWLEDGED:
            return await self._finalize_paid(ctx)

        dispute_type = self.issue_map.dispute_type_for(status_code)
        if dispute_type is not None:
            return await self._dispute_then_finalize(ctx, dispute_type)

        return ctx.finish(
            ReconciliationOutcome.UNRECOGNIZED_STATUS,
            f"Unrecognised payment status '{status_code}'. No action taken.",
        )

    # Finalization

    async def _finalize_paid(self, ctx: ReconciliationContext) -> ReconciliationResult:
        updated = await self.collection_store.update(ctx.record)
        collection_update = CollectionUpdateInfo(
            attempted=True,
            is_successful=updated,
            collection_id=ctx.collection_id,
            message="Collection table updated successfully." if updated else UPDATE_FAILED_DETAIL,
        )
        ctx.log.info("Paid Acknowledged status finalized", update_success=updated)

        if updated:
            return ctx.finish(
                ReconciliationOutcome.COMPLETED,
                "Payment confirmed as Paid Acknowledged. Collection record updated successfully.",
                success=True,
                dispute=DisputeInfo(attempted=False),
                collection_update=collection_update,
            )
        return ctx.finish(
            ReconciliationOutcome.UPDATE_FAILED,
            "Payment is Paid Acknowledged but collection table update failed.",
            dispute=DisputeInfo(attempted=False),
            collection_update=collection_update,
        )

    async def _dispute_then_finalize(
        self, ctx: ReconciliationContext, dispute_type: int
    ) -> ReconciliationResult:
        dispute_label = self.issue_map.dispute_type_label(dispute_type)
        request = DisputeRequest(**ctx.status_request.model_dump(), dispute_type=dispute_type)
        response = await self.dispute_gateway.file_dispute(request)

        if response is None:
            return ctx.finish(
                ReconciliationOutcome.UPSTREAM_UNAVAILABLE,
                "Dispute API call failed. Collection table was not updated.",
                dispute=DisputeInfo(
                    attempted=True,
                    api_call_succeeded=False,
                    dispute_type_sent=dispute_type,
                    dispute_type_label=dispute_label,
                    dispute_message="Dispute API call failed or returned no response.",
                ),
                collection_update=CollectionUpdateInfo(
                    attempted=False,
                    is_successful=False,
                    collection_id=ctx.collection_id,
                    message="Skipped: dispute API call failed.",
                ),
            )

        errors = response.error_messages()
        if response.data is not None and response.data.message:
            dispute_message = response.data.message
        elif errors:
            dispute_message = "; ".join(errors)
        else:
            dispute_message = "No message returned."

        dispute = DisputeInfo(
            attempted=True,
            api_call_succeeded=True,
            dispute_type_sent=dispute_type,
            dispute_type_label=dispute_label,
            dispute_status=response.status,
            dispute_message=dispute_message,
            errors=tuple(errors),
        )
        ctx.log.info(
            "Dispute API response",
            payment_status=ctx.issue_match.actual_status,
            dispute_type=dispute_type,
            dispute_status=response.status,
        )

        if not response.is_accepted:
            return ctx.finish(
                ReconciliationOutcome.DISPUTE_NOT_ACCEPTED,
                f"Dispute API returned status {response.status} "
                f"({'; '.join(errors) if errors else 'see dispute details'}). "
                "Collection table was not updated. Manual reconciliation may be required.",
                dispute=dispute,
                collection_update=CollectionUpdateInfo(
                    attempted=False,
                    is_successful=False,
                    collection_id=ctx.collection_id,
                    message=f"Skipped: dispute API returned status {response.status}. "
                            "Manual reconciliation may be required.",
                ),
            )

        updated = await self.collection_store.update(ctx.record)
        collection_update = CollectionUpdateInfo(
            attempted=True,
            is_successful=updated,
            collection_id=ctx.collection_id,
            message="Collection table updated successfully after dispute." if updated else UPDATE_FAILED_DETAIL,
        )
        if updated:
            return ctx.finish(
                ReconciliationOutcome.COMPLETED,
                f"Dispute accepted ({dispute_label}). Collection record updated successfully.",
                success=True,
                dispute=dispute,
                collection_update=collection_update,
            )
        return ctx.finish(
            ReconciliationOutcome.UPDATE_FAILED,
            f"Dispute accepted ({dispute_label}) but collection table update failed.",
            dispute=dispute,
            collection_update=collection_update,
        )

    # Helpers

    def _payment_status_info(self, response: PaymentStatusResponse) -> PaymentStatusInfo:
        result = response.result
        if result is None:
            return PaymentStatusInfo(response_code=response.response_code, message=response.message)
        return PaymentStatusInfo(
            response_code=response.response_code,
            status_code=result.status_code,
            status_label=self.issue_map.label_for(result.status_code),
            account_reference=result.account_reference,
            reference_number=result.reference_number,
            transaction_id=result.transaction_id,
            message=result.message or response.message,
        )

    def _log_outcome(self, ctx: ReconciliationContext, result: ReconciliationResult) -> None:
        fields = {
            "outcome": result.outcome.value,
            "success": result.success,
            "result_message": result.message,
        }
        if result.outcome == ReconciliationOutcome.UPSTREAM_UNAVAILABLE:
            ctx.log.error("Reconciliation stopped: gateway unavailable", **fields)
        elif result.success:
            ctx.log.info("Reconciliation completed", **fields)
        elif result.outcome in (
            ReconciliationOutcome.VALIDATION_FAILED,
            ReconciliationOutcome.UNSUPPORTED_CLIENT,
        ):
            ctx.log.info("Reconciliation request rejected", **fields)
        else:
            ctx.log.warning("Reconciliation ended without update", **fields)

        log_business_event(
            "collection_reconciled",
            outcome=result.outcome.value,
            success=result.success,
            client_id=ctx.claim.key.client_id,
            collection_id=ctx.collection_id,
            requested_issue_id=ctx.claim.requested_issue_id,
            dispute_attempted=bool(result.dispute and result.dispute.attempted),
            record_updated=bool(result.collection_update and result.collection_update.is_successful),
        )
