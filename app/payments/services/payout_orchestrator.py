"""
Payout orchestrator: the only code that changes a payout's status.

Operator commands (approve, complete, reject) and system commands (fail,
provider sync) all follow the same shape:

1. Acquire the per-payout distributed lock
2. Load the payout and check the command is allowed from its status
3. Call the provider if the command needs it (outside any transaction)
4. In one transaction: row-lock + version check, apply the django-fsm
   transition, save, append the audit entry

Approval is an operator attestation gate. The provider payout is created
between APPROVED and PROCESSING, so both transitions are applied together
once the provider has accepted the payout. If the provider refuses, the
payout stays PENDING and the operator sees the provider's message; only
fatal provider answers (account suspended, unknown account) fail it.

Usage:
    from payments.services import PayoutOrchestrator

    result = PayoutOrchestrator.approve_payout(payout_id, "TX123", actor="ops@staybnb")
    if result.success:
        payout = result.data                 # status == processing
    elif result.error_code == "PROVIDER_ERROR":
        show(result.error, result.details["status_code"])
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, Q, Sum
from django_fsm import TransitionNotAllowed, can_proceed

from core.services import BaseService, ServiceResult

from payments.adapters import PayMongoAdapter, map_provider_status
from payments.exceptions import (
    InvalidTransitionError,
    PayoutNotFoundError,
    PayoutValidationError,
    ProviderError,
)
from payments.filters import PayoutFilter
from payments.locks import DistributedLock, check_version
from payments.models import Payout, PayoutAuditEntry
from payments.policy import FeePolicy, quantize_money, to_decimal
from payments.state_machines import (
    IN_FLIGHT_STATUSES,
    SETTLED_STATUSES,
    PayoutStatus,
)
from payments.validators import PayoutRequest, PayoutValidator

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import QuerySet

    from payments.adapters import ProviderResult


# =============================================================================
# Constants
# =============================================================================

PAYOUT_LOCK_TTL = 120
PAYOUT_LOCK_TIMEOUT = 10.0

SYSTEM_ACTOR = "system"

DEFAULT_FATAL_PROVIDER_CODES = ("account_suspended", "account_not_found", "invalid_account")


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class PayoutStats:
    pending_count: int
    approved_count: int
    processing_count: int
    completed_count: int
    rejected_count: int
    failed_count: int
    total_paid_out: Decimal
    total_fees_paid: Decimal
    pending_amount: Decimal
    in_flight_amount: Decimal
    success_rate: float


@dataclass
class ProviderSyncResult:
    """
    Outcome of pulling a payout's status from the provider.

    Attributes:
        payout: The payout after any applied transition
        provider_status: Raw status string reported by the provider
        mapped_status: provider_status translated to a local status
        changed: Whether a local transition was applied
    """

    payout: Payout
    provider_status: str | None
    mapped_status: str | None
    changed: bool = False


# =============================================================================
# Payout Orchestrator
# =============================================================================


class PayoutOrchestrator(BaseService):
    """
    Owner of the payout state machine.

    Expected failures (missing input, provider refusal) come back as
    ServiceResult failures. Unknown payouts, disallowed transitions, stale
    reads and lock contention are raised (PayoutNotFoundError,
    InvalidTransitionError, StaleRecordError, LockAcquisitionError).
    """

    # Provider adapter - can be injected for testing
    _provider_adapter: PayMongoAdapter | None = None

    @classmethod
    def get_provider_adapter(cls) -> PayMongoAdapter:
        if cls._provider_adapter is None:
            cls._provider_adapter = PayMongoAdapter.from_settings()
        return cls._provider_adapter

    @classmethod
    def set_provider_adapter(cls, adapter: PayMongoAdapter | None) -> None:
        """Replace the provider adapter (None restores the settings-built one)."""
        cls._provider_adapter = adapter

    @classmethod
    def get_fee_policy(cls) -> FeePolicy:
        return FeePolicy.from_settings()

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def submit_payout_request(
        cls,
        request: PayoutRequest,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[Payout]:
        """
        Validate a host withdrawal request and create a pending payout.

        Fee and net amount are fixed at creation from the current policy.
        """
        logger = cls.get_logger()
        fee_policy = cls.get_fee_policy()

        outcome = PayoutValidator(fee_policy).validate(request)
        if not outcome:
            logger.info(
                "Payout request rejected by validation",
                extra={
                    "host_id": request.host_id,
                    "method": request.method,
                    "error_code": outcome.error_code,
                },
            )
            return ServiceResult.failure(
                outcome.reason,
                error_code=outcome.error_code,
                errors={outcome.field_name: [outcome.reason]} if outcome.field_name else None,
            )

        amount = quantize_money(to_decimal(request.amount))
        fee = fee_policy.fee(request.method, amount)
        metadata = {"description": request.description} if request.description else {}

        with cls.atomic():
            payout = Payout.objects.create(
                host_id=request.host_id,
                booking_ids=list(request.booking_ids),
                amount=amount,
                fee=fee,
                net_amount=amount - fee,
                currency=fee_policy.currency,
                method=request.method,
                recipient=dict(request.recipient),
                metadata=metadata,
            )
            cls._record_audit(payout, "", actor, note="Payout requested")

        logger.info(
            "Payout request accepted",
            extra={
                "payout_id": str(payout.id),
                "host_id": payout.host_id,
                "method": payout.method,
                "amount": str(payout.amount),
                "fee": str(payout.fee),
            },
        )
        return ServiceResult.success(payout)

    # =========================================================================
    # Operator Commands
    # =========================================================================

    @classmethod
    def approve_payout(
        cls,
        payout_id: uuid.UUID | str,
        transaction_ref: str,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[Payout]:
        """
        Approve a pending payout and hand it to the provider.

        On success the payout ends in PROCESSING with provider_payout_id
        set. On a non-fatal provider failure it stays PENDING; on a fatal
        one it moves to FAILED.

        Raises:
            PayoutNotFoundError: Unknown payout
            InvalidTransitionError: Payout is not pending
            LockAcquisitionError: Another command holds the payout
        """
        transaction_ref = (transaction_ref or "").strip()
        if not transaction_ref:
            return ServiceResult.failure(
                "A transaction reference is required to approve a payout",
                error_code="TRANSACTION_REF_REQUIRED",
                errors={"transaction_ref": ["This field is required."]},
            )

        with cls._payout_lock(payout_id):
            return cls._approve_with_lock(payout_id, transaction_ref, actor)

    @classmethod
    def _approve_with_lock(
        cls,
        payout_id: uuid.UUID | str,
        transaction_ref: str,
        actor: str,
    ) -> ServiceResult[Payout]:
        logger = cls.get_logger()
        payout = cls.get_payout(payout_id)

        if not can_proceed(payout.approve):
            raise InvalidTransitionError.for_payout(payout, "approve")

        logger.info(
            "Submitting approved payout to provider",
            extra={
                "payout_id": str(payout.id),
                "transaction_ref": transaction_ref,
                "method": payout.method,
                "amount": str(payout.amount),
            },
        )
        provider_result = cls.get_provider_adapter().create_payout(payout)

        if not provider_result.success:
            return cls._handle_provider_refusal(payout, provider_result, actor)

        provider_payout_id = (provider_result.data or {}).get("id")
        try:
            with cls.atomic():
                locked = check_version(Payout, payout.pk, payout.version)
                locked.approve(transaction_ref=transaction_ref)
                cls._record_audit(locked, PayoutStatus.PENDING, actor, note=f"Approved with ref {transaction_ref}")
                locked.mark_processing(provider_payout_id=provider_payout_id)
                locked.save()
                cls._record_audit(
                    locked,
                    PayoutStatus.APPROVED,
                    actor,
                    note=f"Provider payout {provider_payout_id or '(no id)'} created",
                )
        except Exception:
            # The provider already holds a payout for this record
            logger.error(
                "Provider payout created but local transition failed - reconciliation needed",
                extra={
                    "payout_id": str(payout.id),
                    "provider_payout_id": provider_payout_id,
                },
                exc_info=True,
            )
            raise

        logger.info(
            "Payout approved and processing",
            extra={
                "payout_id": str(locked.id),
                "provider_payout_id": provider_payout_id,
                "status": locked.status,
            },
        )
        return ServiceResult.success(locked)

    @classmethod
    def _handle_provider_refusal(
        cls,
        payout: Payout,
        provider_result: ProviderResult,
        actor: str,
    ) -> ServiceResult[Payout]:
        details = {
            "payout_id": str(payout.id),
            "status_code": provider_result.code,
            "provider_code": provider_result.provider_code,
        }

        if cls.is_fatal_provider_failure(provider_result):
            cls.get_logger().error(
                "Fatal provider error, failing payout",
                extra=details,
            )
            failed = cls._apply_transition(
                payout,
                "fail",
                actor,
                note=f"Provider refused payout: {provider_result.error}",
                reason=provider_result.error,
            )
            details["status"] = failed.status
            return ServiceResult.failure(
                f"Payout failed: {provider_result.error}",
                error_code="PAYOUT_FAILED",
                details=details,
            )

        cls.get_logger().warning(
            "Provider refused payout, leaving it pending",
            extra=details,
        )
        details["status"] = payout.status
        return ServiceResult.failure(
            provider_result.error,
            error_code="PROVIDER_ERROR",
            details=details,
        )

    @classmethod
    def is_fatal_provider_failure(cls, provider_result: ProviderResult) -> bool:
        """Whether retrying the provider call could never succeed."""
        fatal_codes = getattr(settings, "PAYOUT_FATAL_PROVIDER_CODES", DEFAULT_FATAL_PROVIDER_CODES)
        if provider_result.provider_code and provider_result.provider_code in fatal_codes:
            return True
        return provider_result.code == 403

    @classmethod
    def complete_payout(
        cls,
        payout_id: uuid.UUID | str,
        proof_url: str | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[Payout]:
        """Mark a processing payout delivered. Proof of transfer is optional."""
        with cls._payout_lock(payout_id):
            payout = cls.get_payout(payout_id)
            payout = cls._apply_transition(
                payout,
                "complete",
                actor,
                note="Completed" + (f", proof {proof_url}" if proof_url else ""),
                proof_url=proof_url,
            )

        cls.get_logger().info(
            "Payout completed",
            extra={"payout_id": str(payout.id), "has_proof": bool(proof_url)},
        )
        return ServiceResult.success(payout)

    @classmethod
    def reject_payout(
        cls,
        payout_id: uuid.UUID | str,
        reason: str,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[Payout]:
        """Reject a pending payout. A reason is mandatory."""
        reason = (reason or "").strip()
        if not reason:
            return ServiceResult.failure(
                "A reason is required to reject a payout",
                error_code="REJECTION_REASON_REQUIRED",
                errors={"reason": ["This field is required."]},
            )

        with cls._payout_lock(payout_id):
            payout = cls.get_payout(payout_id)
            payout = cls._apply_transition(payout, "reject", actor, note=reason, reason=reason)

        cls.get_logger().info(
            "Payout rejected",
            extra={"payout_id": str(payout.id), "actor": actor},
        )
        return ServiceResult.success(payout)

    @classmethod
    def fail_payout(
        cls,
        payout_id: uuid.UUID | str,
        reason: str,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[Payout]:
        """Move any non-terminal payout to FAILED."""
        with cls._payout_lock(payout_id):
            payout = cls.get_payout(payout_id)
            payout = cls._apply_transition(payout, "fail", actor, note=reason, reason=reason)

        cls.get_logger().warning(
            "Payout failed",
            extra={"payout_id": str(payout.id), "reason": reason},
        )
        return ServiceResult.success(payout)

    @classmethod
    def sync_provider_status(
        cls,
        payout_id: uuid.UUID | str,
        actor: str = SYSTEM_ACTOR,
    ) -> ServiceResult[ProviderSyncResult]:
        """
        Pull the provider's view of a processing payout.

        A provider-side failure or cancellation fails the payout. Provider
        "paid" is reported back but not applied: completion stays an
        operator decision.
        """
        with cls._payout_lock(payout_id):
            payout = cls.get_payout(payout_id)
            if payout.status != PayoutStatus.PROCESSING or not payout.provider_payout_id:
                return ServiceResult.success(ProviderSyncResult(payout, None, None))

            result = cls.get_provider_adapter().retrieve_payout(payout.provider_payout_id)
            try:
                result.raise_for_failure(payout_id=str(payout.id))
            except ProviderError as e:
                return ServiceResult.from_exception(e)

            provider_status = ((result.data or {}).get("attributes") or {}).get("status")
            mapped = map_provider_status(provider_status)
            changed = False
            if mapped == PayoutStatus.FAILED:
                payout = cls._apply_transition(
                    payout,
                    "fail",
                    actor,
                    note=f"Provider reported payout {provider_status}",
                    reason=f"Provider reported payout {provider_status}",
                )
                changed = True

        cls.get_logger().info(
            "Provider status synced",
            extra={
                "payout_id": str(payout.id),
                "provider_status": provider_status,
                "mapped_status": mapped,
                "changed": changed,
            },
        )
        return ServiceResult.success(ProviderSyncResult(payout, provider_status, mapped, changed))

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get_payout(cls, payout_id: uuid.UUID | str) -> Payout:
        try:
            return Payout.objects.get(pk=payout_id)
        except (Payout.DoesNotExist, DjangoValidationError, ValueError):
            raise PayoutNotFoundError.for_id(payout_id) from None

    @classmethod
    def list_payouts(cls, filters: dict[str, Any] | None = None) -> QuerySet[Payout]:
        """
        Filter payouts by status, method, host and creation date range.

        Raises:
            PayoutValidationError: A filter value could not be parsed
        """
        data = filters or {}
        if not hasattr(data, "getlist"):
            # Plain dicts may pass a single status/method as a string
            data = {
                key: [value] if key in ("status", "method") and isinstance(value, str) else value
                for key, value in data.items()
            }
        filterset = PayoutFilter(data, queryset=Payout.objects.all())
        if not filterset.is_valid():
            raise PayoutValidationError(
                "Invalid payout filters",
                error_code="INVALID_FILTERS",
                details={"errors": filterset.errors.get_json_data()},
            )
        return filterset.qs

    @classmethod
    def get_payout_stats(cls) -> PayoutStats:
        counts = {
            f"{status}_count": Count("id", filter=Q(status=status))
            for status in PayoutStatus.values
        }
        totals = Payout.objects.aggregate(
            **counts,
            total_paid_out=Sum("amount", filter=Q(status=PayoutStatus.COMPLETED)),
            total_fees_paid=Sum("fee", filter=Q(status=PayoutStatus.COMPLETED)),
            pending_amount=Sum("amount", filter=Q(status=PayoutStatus.PENDING)),
            in_flight_amount=Sum("amount", filter=Q(status__in=IN_FLIGHT_STATUSES)),
        )

        settled = sum(totals[f"{status.value}_count"] for status in SETTLED_STATUSES)
        success_rate = (
            round(totals["completed_count"] / settled * 100, 2) if settled else 0.0
        )
        zero = Decimal("0.00")
        return PayoutStats(
            pending_count=totals["pending_count"],
            approved_count=totals["approved_count"],
            processing_count=totals["processing_count"],
            completed_count=totals["completed_count"],
            rejected_count=totals["rejected_count"],
            failed_count=totals["failed_count"],
            total_paid_out=totals["total_paid_out"] or zero,
            total_fees_paid=totals["total_fees_paid"] or zero,
            pending_amount=totals["pending_amount"] or zero,
            in_flight_amount=totals["in_flight_amount"] or zero,
            success_rate=success_rate,
        )

    @classmethod
    def validate_bank_account(
        cls,
        bank_code: str,
        account_number: str,
    ) -> ServiceResult[dict[str, Any]]:
        """Ask the provider whether a bank account exists and who holds it."""
        bank_code = (bank_code or "").strip()
        account_number = (account_number or "").strip()
        missing = [
            name
            for name, value in (("bank_code", bank_code), ("account_number", account_number))
            if not value
        ]
        if missing:
            return ServiceResult.failure(
                f"Missing required field(s): {', '.join(missing)}",
                error_code="MISSING_BANK_ACCOUNT_FIELDS",
                errors={name: ["This field is required."] for name in missing},
            )

        result = cls.get_provider_adapter().validate_bank_account(bank_code, account_number)
        try:
            result.raise_for_failure()
        except ProviderError as e:
            return ServiceResult.from_exception(e)
        return ServiceResult.success(result.data)

    # =========================================================================
    # Internals
    # =========================================================================

    @classmethod
    def _payout_lock(cls, payout_id: uuid.UUID | str) -> DistributedLock:
        return DistributedLock(
            f"payout:transition:{payout_id}",
            ttl=getattr(settings, "PAYOUT_LOCK_TTL", PAYOUT_LOCK_TTL),
            timeout=getattr(settings, "PAYOUT_LOCK_TIMEOUT", PAYOUT_LOCK_TIMEOUT),
        )

    @classmethod
    def _apply_transition(
        cls,
        payout: Payout,
        transition_name: str,
        actor: str,
        note: str = "",
        **kwargs: Any,
    ) -> Payout:
        """
        Apply one transition atomically with its audit entry.

        The row is locked and compared against the version read by the
        caller, so a decision made on stale data is refused.
        """
        with cls.atomic():
            locked = check_version(Payout, payout.pk, payout.version)
            from_status = locked.status
            try:
                getattr(locked, transition_name)(**kwargs)
            except TransitionNotAllowed:
                raise InvalidTransitionError.for_payout(locked, transition_name) from None
            locked.save()
            cls._record_audit(locked, from_status, actor, note=note)
        return locked

    @staticmethod
    def _record_audit(payout: Payout, from_status: str, actor: str, note: str = "") -> PayoutAuditEntry:
        return PayoutAuditEntry.objects.create(
            payout=payout,
            from_status=from_status,
            to_status=payout.status,
            actor=actor or SYSTEM_ACTOR,
            note=note,
        )


__all__ = [
    "PayoutOrchestrator",
    "PayoutStats",
    "ProviderSyncResult",
]
