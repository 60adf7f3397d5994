"""
Celery tasks for payout processing.

This module provides async tasks for:
- Running a batch disbursement off the request thread

Usage:
    from payments.services.batch_disburser import new_batch_id
    from payments.tasks import disburse_batch_task

    batch_id = new_batch_id()
    disburse_batch_task.delay([str(pid) for pid in payout_ids], actor="ops", batch_id=batch_id)
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.exceptions import LockAcquisitionError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_BATCH_LOCK_RETRIES = 3


# =============================================================================
# Batch Disbursement
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(LockAcquisitionError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_BATCH_LOCK_RETRIES},
    acks_late=True,
)
def disburse_batch_task(
    self,
    payout_ids: list[str],
    actor: str = "system",
    batch_id: str | None = None,
) -> dict:
    """
    Approve a list of payouts sequentially.

    Retried with backoff while another batch holds the batch lock. Per-payout
    failures are part of the returned result, not task failures.

    Args:
        payout_ids: Payout UUIDs as strings
        actor: Operator recorded on each audit entry
        batch_id: Pre-allocated batch id, so the caller can report it

    Returns:
        BatchDisbursementResult as a dict
    """
    from payments.services import BatchDisburser

    logger.info(
        "Running queued batch disbursement",
        extra={
            "batch_id": batch_id,
            "recipient_count": len(payout_ids),
            "attempt": self.request.retries + 1,
        },
    )
    result = BatchDisburser.disburse(payout_ids, actor=actor, batch_id=batch_id)
    return result.to_dict()


__all__ = ["disburse_batch_task"]
