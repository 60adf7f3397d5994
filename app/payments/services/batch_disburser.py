"""
Batch disbursement: approve many pending payouts as one operator action.

Recipients are processed strictly one after another through
PayoutOrchestrator.approve_payout, so every recipient gets the same
validation, locking, audit trail and provider error handling as a single
approval. Pacing comes from the provider adapter's rate limiter.

A failure for one recipient, whether an application error or an unexpected
one (database errors included), is recorded and the loop moves on; successes
already sent to the provider are never rolled back.

Usage:
    result = BatchDisburser.disburse([payout_id_1, payout_id_2], actor="ops")
    result.batch_id       # "batch_1767225600000"
    result.successful     # [{"payout_id": ..., "provider_payout_id": ..., "status": "success"}]
    result.failed         # [{"payout_id": ..., "error": ..., "status": "failed"}]
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService

from payments.locks import DistributedLock
from payments.services.payout_orchestrator import SYSTEM_ACTOR, PayoutOrchestrator

if TYPE_CHECKING:
    import uuid
    from typing import Any


BATCH_LOCK_KEY = "payout:batch"
BATCH_LOCK_TTL = 900
UNEXPECTED_ERROR_CODE = "DISBURSEMENT_ERROR"


@dataclass
class BatchDisbursementResult:
    batch_id: str
    successful: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "total": self.total}


def new_batch_id() -> str:
    return f"batch_{int(timezone.now().timestamp() * 1000)}"


class BatchDisburser(BaseService):
    """Sequential, failure-isolating driver over PayoutOrchestrator."""

    @classmethod
    def disburse(
        cls,
        payout_ids: list[uuid.UUID | str],
        actor: str = SYSTEM_ACTOR,
        batch_id: str | None = None,
    ) -> BatchDisbursementResult:
        """
        Approve each payout in order, collecting per-recipient outcomes.

        The batch id doubles as the transaction reference recorded on every
        approved payout.

        Raises:
            LockAcquisitionError: Another batch is already running
        """
        logger = cls.get_logger()
        result = BatchDisbursementResult(batch_id=batch_id or new_batch_id())

        logger.info(
            "Starting batch disbursement",
            extra={"batch_id": result.batch_id, "recipient_count": len(payout_ids)},
        )

        with DistributedLock(
            BATCH_LOCK_KEY,
            ttl=getattr(settings, "PAYOUT_BATCH_LOCK_TTL", BATCH_LOCK_TTL),
            blocking=False,
        ):
            for payout_id in payout_ids:
                cls._disburse_one(result, payout_id, actor)

        logger.info(
            "Batch disbursement finished",
            extra={
                "batch_id": result.batch_id,
                "successful": len(result.successful),
                "failed": len(result.failed),
            },
        )
        return result

    @classmethod
    def _disburse_one(
        cls,
        result: BatchDisbursementResult,
        payout_id: uuid.UUID | str,
        actor: str,
    ) -> None:
        try:
            outcome = PayoutOrchestrator.approve_payout(
                payout_id,
                transaction_ref=result.batch_id,
                actor=actor,
            )
        except BaseApplicationError as e:
            cls.get_logger().warning(
                "Batch recipient failed",
                extra={
                    "batch_id": result.batch_id,
                    "payout_id": str(payout_id),
                    "error_code": e.error_code,
                },
            )
            result.failed.append(
                {
                    "payout_id": str(payout_id),
                    "error": e.message,
                    "error_code": e.error_code,
                    "status": "failed",
                }
            )
            return
        except Exception:
            # Database and other unexpected errors stay with this recipient
            cls.get_logger().error(
                "Batch recipient raised unexpectedly",
                extra={"batch_id": result.batch_id, "payout_id": str(payout_id)},
                exc_info=True,
            )
            result.failed.append(
                {
                    "payout_id": str(payout_id),
                    "error": "Unexpected error while disbursing payout",
                    "error_code": UNEXPECTED_ERROR_CODE,
                    "status": "failed",
                }
            )
            return

        if outcome.success:
            result.successful.append(
                {
                    "payout_id": str(payout_id),
                    "provider_payout_id": outcome.data.provider_payout_id,
                    "status": "success",
                }
            )
            return

        cls.get_logger().warning(
            "Batch recipient refused",
            extra={
                "batch_id": result.batch_id,
                "payout_id": str(payout_id),
                "error_code": outcome.error_code,
            },
        )
        result.failed.append(
            {
                "payout_id": str(payout_id),
                "error": outcome.error,
                "error_code": outcome.error_code,
                "status": "failed",
            }
        )


__all__ = [
    "BatchDisburser",
    "BatchDisbursementResult",
    "new_batch_id",
]
