"""
Reporting surface over the reconciliation engine.

get_platform_earnings(period) loads the three record sets once and hands
them to ReconciliationEngine; export_financial_report(metrics, period)
serializes Metrics as CSV for download.

Periods:
    today    since local midnight
    week     since the start of the current ISO week (Monday)
    month    since the first of the current month
    quarter  since the first day of the current quarter
    year     since January 1st
    all      no lower bound
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

from payments.exceptions import PayoutValidationError
from payments.models import BookingRevenueRecord, Payout, RefundRecord
from payments.policy import quantize_money
from payments.services.reconciliation_engine import ReconciliationEngine

if TYPE_CHECKING:
    from payments.services.reconciliation_engine import Metrics

logger = logging.getLogger(__name__)

PERIODS = ("today", "week", "month", "quarter", "year", "all")
DEFAULT_PERIOD = "month"

SUMMARY_HEADER = ["Metric", "Amount", "Growth %"]


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    """
    Lower bound of a reporting period in the current timezone.

    Raises:
        PayoutValidationError: Unknown period name
    """
    if period not in PERIODS:
        raise PayoutValidationError(
            f"Unknown period '{period}'. Expected one of: {', '.join(PERIODS)}",
            error_code="INVALID_PERIOD",
            details={"period": period},
        )
    if period == "all":
        return None

    now = timezone.localtime(now or timezone.now())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        return midnight
    if period == "week":
        return midnight - timedelta(days=midnight.weekday())
    if period == "month":
        return midnight.replace(day=1)
    if period == "quarter":
        first_month = (now.month - 1) // 3 * 3 + 1
        return midnight.replace(month=first_month, day=1)
    return midnight.replace(month=1, day=1)


def _trend_start(engine: ReconciliationEngine, now: datetime) -> datetime:
    year, month = engine.month_keys(now)[0]
    return timezone.localtime(now).replace(
        year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0
    )


def get_platform_earnings(
    period: str = DEFAULT_PERIOD,
    now: datetime | None = None,
    engine: ReconciliationEngine | None = None,
) -> Metrics:
    """
    Platform financial metrics for a period.

    The summary and breakdowns cover the period; the monthly trend always
    covers the trailing months.
    """
    now = now or timezone.now()
    engine = engine or ReconciliationEngine.from_settings()
    since = period_start(period, now)

    # One query per record set, covering both the period and the trend window
    load_from = _trend_start(engine, now)
    if since is None:
        load_from = None
    elif since < load_from:
        load_from = since

    bookings = BookingRevenueRecord.objects.all()
    payouts = Payout.objects.all()
    refunds = RefundRecord.objects.all()
    if load_from is not None:
        bookings = bookings.filter(created_at__gte=load_from)
        payouts = payouts.filter(created_at__gte=load_from)
        refunds = refunds.filter(created_at__gte=load_from)

    metrics = engine.aggregate(bookings, payouts, refunds, since=since, now=now)
    logger.info(
        "Platform earnings computed",
        extra={
            "period": period,
            "since": since.isoformat() if since else None,
            "net_platform_revenue": str(metrics.summary.net_platform_revenue),
            "health_band": metrics.health.band,
        },
    )
    return metrics


def _money(value) -> str:
    return str(quantize_money(value))


def export_financial_report(
    metrics: Metrics,
    period: str,
    generated_at: datetime | None = None,
) -> str:
    """Serialize Metrics as CSV text."""
    generated_at = generated_at or timezone.now()
    summary = metrics.summary
    rate_label = f"{summary.commission_rate * 100:.0f}%"

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["PLATFORM FINANCIAL REPORT"])
    writer.writerow(["Generated:", generated_at.isoformat()])
    writer.writerow(["Period:", period])
    writer.writerow([])

    writer.writerow(["EXECUTIVE SUMMARY"])
    writer.writerow(SUMMARY_HEADER)
    writer.writerow(
        [
            "Total Booking Revenue",
            _money(summary.total_booking_revenue),
            f"{summary.revenue_growth:+.2f}%",
        ]
    )
    writer.writerow([f"Platform Commission ({rate_label})", _money(summary.platform_commission), ""])
    writer.writerow(["Payout Fee Revenue", _money(summary.payout_fee_revenue), ""])
    writer.writerow(["Total Platform Revenue", _money(summary.total_platform_revenue), ""])
    writer.writerow(["Net Platform Revenue", _money(summary.net_platform_revenue), ""])
    writer.writerow([])

    writer.writerow(["MONTHLY TREND"])
    writer.writerow(
        ["Month", "Booking Revenue", "Commission", "Payout Fees", "Refunds", "Net Revenue", "Bookings", "Payouts"]
    )
    for bucket in metrics.monthly_trend:
        writer.writerow(
            [
                bucket.month,
                _money(bucket.booking_revenue),
                _money(bucket.platform_commission),
                _money(bucket.payout_fees),
                _money(bucket.refunds),
                _money(bucket.net_revenue),
                bucket.booking_count,
                bucket.payout_count,
            ]
        )
    writer.writerow([])

    writer.writerow(["PAYMENT METHODS"])
    writer.writerow(["Method", "Payouts", "Total Amount", "Total Fees", "Average Fee"])
    for row in metrics.method_breakdown:
        writer.writerow(
            [
                row.method,
                row.count,
                _money(row.total_amount),
                _money(row.total_fees),
                _money(row.average_fee),
            ]
        )

    return buffer.getvalue()


def report_filename(period: str, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or timezone.now()
    return f"platform-earnings-{period}-{generated_at.date().isoformat()}.csv"


__all__ = [
    "PERIODS",
    "export_financial_report",
    "get_platform_earnings",
    "period_start",
    "report_filename",
]
