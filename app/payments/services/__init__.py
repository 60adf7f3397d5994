"""
Payout and reconciliation services.

This module provides:
- PayoutOrchestrator: Owner of the payout state machine and provider calls
- BatchDisburser: Sequential, failure-isolating multi-payout approval
- ReconciliationEngine: Read-only platform financial metrics
- Reporting helpers: Period-scoped earnings and CSV export

Usage:
    from payments.services import PayoutOrchestrator

    result = PayoutOrchestrator.approve_payout(payout_id, "TX123", actor="ops")

    from payments.services import BatchDisburser

    result = BatchDisburser.disburse([id_1, id_2, id_3], actor="ops")
    result.successful, result.failed

    from payments.services import get_platform_earnings, export_financial_report

    metrics = get_platform_earnings("month")
    csv_text = export_financial_report(metrics, "month")
"""

from payments.services.batch_disburser import (
    BatchDisburser,
    BatchDisbursementResult,
)
from payments.services.payout_orchestrator import (
    PayoutOrchestrator,
    PayoutStats,
    ProviderSyncResult,
)
from payments.services.reconciliation_engine import (
    Metrics,
    MonthlyBucket,
    ReconciliationEngine,
)
from payments.services.reporting import (
    PERIODS,
    export_financial_report,
    get_platform_earnings,
    period_start,
    report_filename,
)

__all__ = [
    "PERIODS",
    "BatchDisburser",
    "BatchDisbursementResult",
    "Metrics",
    "MonthlyBucket",
    "PayoutOrchestrator",
    "PayoutStats",
    "ProviderSyncResult",
    "ReconciliationEngine",
    "export_financial_report",
    "get_platform_earnings",
    "period_start",
    "report_filename",
]
