"""
Reconciliation engine: platform financial metrics from raw records.

Consumes bookings, payouts and refunds (model instances or any objects with
the same attributes) and derives everything else: commission, refund impact,
monthly buckets, method and host breakdowns and health scores. Nothing is
written back; commission is never stored.

Money is summed as Decimal without intermediate rounding, so for every
monthly bucket

    net_revenue == commission + payout_fees - refunds * commission_rate

holds exactly.

Usage:
    engine = ReconciliationEngine.from_settings()
    metrics = engine.aggregate(bookings, payouts, refunds, since=period_start)
    metrics.summary.net_platform_revenue
    metrics.health.band                 # "Excellent" | "Good" | "Needs Attention"
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from payments.policy import to_decimal
from payments.state_machines import (
    REVENUE_BOOKING_STATUSES,
    SETTLED_STATUSES,
    BookingStatus,
    PayoutStatus,
    RefundStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any


DEFAULT_COMMISSION_RATE = Decimal("0.10")
DEFAULT_TREND_MONTHS = 6
TOP_HOSTS_LIMIT = 10

ZERO = Decimal("0")

# (threshold, inverse) per health dimension
HEALTH_THRESHOLDS: dict[str, tuple[float, bool]] = {
    "revenue": (10, False),
    "efficiency": (90, False),
    "risk": (5, True),
    "liquidity": (100000, True),
}

PENDING_REFUND_STATUSES = frozenset({RefundStatus.PENDING, RefundStatus.APPROVED})


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class MonthlyBucket:
    month: str
    year: int
    month_number: int
    booking_revenue: Decimal = ZERO
    platform_commission: Decimal = ZERO
    payout_fees: Decimal = ZERO
    refunds: Decimal = ZERO
    net_revenue: Decimal = ZERO
    booking_count: int = 0
    payout_count: int = 0


@dataclass
class MethodBreakdown:
    method: str
    count: int = 0
    total_amount: Decimal = ZERO
    total_fees: Decimal = ZERO
    average_fee: Decimal = ZERO


@dataclass
class HostRanking:
    host_id: int
    total_earnings: Decimal = ZERO
    total_fees: Decimal = ZERO
    payout_count: int = 0
    booking_count: int = 0
    average_booking_value: Decimal = ZERO


@dataclass
class BookingAnalysis:
    status_distribution: dict[str, int]
    total_revenue: Decimal
    completed_revenue: Decimal
    average_booking_value: Decimal
    completion_rate: float


@dataclass
class FinancialSummary:
    total_booking_revenue: Decimal
    commission_rate: Decimal
    platform_commission: Decimal
    payout_fee_revenue: Decimal
    total_platform_revenue: Decimal
    total_refunded: Decimal
    pending_refunds: Decimal
    net_platform_revenue: Decimal
    host_earnings: Decimal
    paid_to_hosts: Decimal
    outstanding_host_balance: Decimal
    payout_success_rate: float
    refund_rate: float
    revenue_growth: float


@dataclass
class HealthScores:
    revenue: float
    efficiency: float
    risk: float
    liquidity: float
    overall: float
    band: str


@dataclass
class Metrics:
    summary: FinancialSummary
    monthly_trend: list[MonthlyBucket]
    method_breakdown: list[MethodBreakdown]
    top_hosts: list[HostRanking]
    booking_analysis: BookingAnalysis
    health: HealthScores
    generated_at: datetime | None = None
    since: datetime | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Scoring Helpers
# =============================================================================


def health_score(value: float, threshold: float, inverse: bool = False) -> float:
    """
    Map a metric onto [0, 100] against its threshold.

    Regular metrics ramp linearly up to the threshold and cap at 100.
    Inverse metrics score 100 below the threshold and lose one point per
    percent they exceed it.
    """
    value = float(value)
    if inverse:
        score = 100.0 if value < threshold else 100 - (value - threshold) / threshold * 100
    else:
        score = 100.0 if value > threshold else value / threshold * 100
    return max(0.0, min(100.0, score))


def health_band(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    return "Needs Attention"


def percentage(part: Any, whole: Any) -> float:
    if not whole:
        return 0.0
    return round(float(part) / float(whole) * 100, 2)


def _local(value: datetime | None) -> datetime | None:
    if value is not None and timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def _created_since(records: list[Any], since: datetime | None) -> list[Any]:
    if since is None:
        return records
    return [r for r in records if r.created_at is not None and r.created_at >= since]


def _status(record: Any) -> str:
    status = getattr(record, "status", "")
    return getattr(status, "value", status)


# =============================================================================
# Engine
# =============================================================================


class ReconciliationEngine:
    """Read-only aggregation of bookings, payouts and refunds into Metrics."""

    def __init__(
        self,
        commission_rate: Any = DEFAULT_COMMISSION_RATE,
        trend_months: int = DEFAULT_TREND_MONTHS,
    ) -> None:
        self.commission_rate = to_decimal(commission_rate)
        self.trend_months = trend_months

    @classmethod
    def from_settings(cls) -> ReconciliationEngine:
        return cls(
            commission_rate=getattr(settings, "PLATFORM_COMMISSION_RATE", DEFAULT_COMMISSION_RATE),
            trend_months=getattr(settings, "REPORT_TREND_MONTHS", DEFAULT_TREND_MONTHS),
        )

    def aggregate(
        self,
        bookings: Iterable[Any],
        payouts: Iterable[Any],
        refunds: Iterable[Any],
        since: datetime | None = None,
        now: datetime | None = None,
    ) -> Metrics:
        """
        Build Metrics from the three record sets.

        Summary, breakdowns and health are scoped to records created at or
        after `since` (everything when None). The monthly trend always
        covers the trailing months ending at `now`.
        """
        now = now or timezone.now()
        bookings, payouts, refunds = list(bookings), list(payouts), list(refunds)

        trend = self.monthly_trend(bookings, payouts, refunds, now=now)
        scoped_bookings = _created_since(bookings, since)
        scoped_payouts = _created_since(payouts, since)
        scoped_refunds = _created_since(refunds, since)

        summary = self.summary(
            scoped_bookings,
            scoped_payouts,
            scoped_refunds,
            revenue_growth=self.revenue_growth(trend),
        )
        return Metrics(
            summary=summary,
            monthly_trend=trend,
            method_breakdown=self.method_breakdown(scoped_payouts),
            top_hosts=self.top_hosts(scoped_payouts, scoped_bookings),
            booking_analysis=self.booking_analysis(scoped_bookings),
            health=self.health(summary),
            generated_at=now,
            since=since,
        )

    # =========================================================================
    # Summary
    # =========================================================================

    def summary(
        self,
        bookings: list[Any],
        payouts: list[Any],
        refunds: list[Any],
        revenue_growth: float = 0.0,
    ) -> FinancialSummary:
        rate = self.commission_rate
        revenue = sum(
            (to_decimal(b.total_price) for b in bookings if _status(b) in REVENUE_BOOKING_STATUSES),
            ZERO,
        )
        completed = [p for p in payouts if _status(p) == PayoutStatus.COMPLETED]
        payout_fees = sum((to_decimal(p.fee) for p in completed), ZERO)
        paid_to_hosts = sum((to_decimal(p.amount) for p in completed), ZERO)
        refunded = sum(
            (to_decimal(r.refund_amount) for r in refunds if _status(r) == RefundStatus.COMPLETED),
            ZERO,
        )
        pending_refunds = sum(
            (to_decimal(r.refund_amount) for r in refunds if _status(r) in PENDING_REFUND_STATUSES),
            ZERO,
        )

        commission = revenue * rate
        host_earnings = revenue * (1 - rate)
        settled = sum(1 for p in payouts if _status(p) in SETTLED_STATUSES)

        return FinancialSummary(
            total_booking_revenue=revenue,
            commission_rate=rate,
            platform_commission=commission,
            payout_fee_revenue=payout_fees,
            total_platform_revenue=commission + payout_fees,
            total_refunded=refunded,
            pending_refunds=pending_refunds,
            net_platform_revenue=commission + payout_fees - refunded * rate,
            host_earnings=host_earnings,
            paid_to_hosts=paid_to_hosts,
            outstanding_host_balance=max(host_earnings - paid_to_hosts, ZERO),
            payout_success_rate=percentage(len(completed), settled),
            refund_rate=percentage(refunded, revenue),
            revenue_growth=revenue_growth,
        )

    # =========================================================================
    # Monthly Trend
    # =========================================================================

    def month_keys(self, now: datetime) -> list[tuple[int, int]]:
        """(year, month) for the trailing window, oldest first, ending at now."""
        now = _local(now)
        keys = []
        year, month = now.year, now.month
        for _ in range(self.trend_months):
            keys.append((year, month))
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        return list(reversed(keys))

    def monthly_trend(
        self,
        bookings: list[Any],
        payouts: list[Any],
        refunds: list[Any],
        now: datetime,
    ) -> list[MonthlyBucket]:
        buckets: dict[tuple[int, int], MonthlyBucket] = {}
        for year, month in self.month_keys(now):
            label = datetime(year, month, 1).strftime("%b %Y")
            buckets[(year, month)] = MonthlyBucket(month=label, year=year, month_number=month)

        def bucket_for(record: Any) -> MonthlyBucket | None:
            created = _local(record.created_at)
            if created is None:
                return None
            return buckets.get((created.year, created.month))

        for booking in bookings:
            bucket = bucket_for(booking)
            if bucket is None or _status(booking) not in REVENUE_BOOKING_STATUSES:
                continue
            amount = to_decimal(booking.total_price)
            bucket.booking_revenue += amount
            bucket.platform_commission += amount * self.commission_rate
            bucket.booking_count += 1

        for payout in payouts:
            bucket = bucket_for(payout)
            if bucket is None or _status(payout) != PayoutStatus.COMPLETED:
                continue
            bucket.payout_fees += to_decimal(payout.fee)
            bucket.payout_count += 1

        for refund in refunds:
            bucket = bucket_for(refund)
            if bucket is None or _status(refund) != RefundStatus.COMPLETED:
                continue
            bucket.refunds += to_decimal(refund.refund_amount)

        for bucket in buckets.values():
            bucket.net_revenue = (
                bucket.platform_commission
                + bucket.payout_fees
                - bucket.refunds * self.commission_rate
            )
        return list(buckets.values())

    @staticmethod
    def revenue_growth(trend: list[MonthlyBucket]) -> float:
        """Booking revenue change of the latest month over the one before."""
        if len(trend) < 2:
            return 0.0
        previous, current = trend[-2].booking_revenue, trend[-1].booking_revenue
        if not previous:
            return 0.0
        return round(float((current - previous) / previous * 100), 2)

    # =========================================================================
    # Breakdowns
    # =========================================================================

    @staticmethod
    def method_breakdown(payouts: list[Any]) -> list[MethodBreakdown]:
        rows: dict[str, MethodBreakdown] = {}
        for payout in payouts:
            if _status(payout) != PayoutStatus.COMPLETED:
                continue
            method = getattr(payout.method, "value", payout.method) or "unknown"
            row = rows.setdefault(method, MethodBreakdown(method=method))
            row.count += 1
            row.total_amount += to_decimal(payout.amount)
            row.total_fees += to_decimal(payout.fee)

        for row in rows.values():
            row.average_fee = row.total_fees / row.count
        return sorted(rows.values(), key=lambda row: row.total_amount, reverse=True)

    @staticmethod
    def top_hosts(payouts: list[Any], bookings: list[Any], limit: int = TOP_HOSTS_LIMIT) -> list[HostRanking]:
        hosts: dict[int, HostRanking] = {}
        for payout in payouts:
            if _status(payout) != PayoutStatus.COMPLETED:
                continue
            host = hosts.setdefault(payout.host_id, HostRanking(host_id=payout.host_id))
            host.total_earnings += to_decimal(payout.amount)
            host.total_fees += to_decimal(payout.fee)
            host.payout_count += 1

        booking_counts = Counter(b.host_id for b in bookings)
        for host in hosts.values():
            host.booking_count = booking_counts.get(host.host_id, 0)
            if host.booking_count:
                host.average_booking_value = host.total_earnings / host.booking_count

        ranked = sorted(
            hosts.values(),
            key=lambda host: (-host.total_earnings, -host.payout_count, host.host_id),
        )
        return ranked[:limit]

    @staticmethod
    def booking_analysis(bookings: list[Any]) -> BookingAnalysis:
        distribution: dict[str, int] = defaultdict(int)
        total_revenue = ZERO
        completed_revenue = ZERO
        for booking in bookings:
            status = _status(booking)
            distribution[status] += 1
            amount = to_decimal(booking.total_price)
            total_revenue += amount
            if status == BookingStatus.COMPLETED:
                completed_revenue += amount

        count = len(bookings)
        return BookingAnalysis(
            status_distribution=dict(distribution),
            total_revenue=total_revenue,
            completed_revenue=completed_revenue,
            average_booking_value=total_revenue / count if count else ZERO,
            completion_rate=percentage(distribution.get(BookingStatus.COMPLETED, 0), count),
        )

    # =========================================================================
    # Health
    # =========================================================================

    @staticmethod
    def health(summary: FinancialSummary) -> HealthScores:
        values = {
            "revenue": summary.revenue_growth,
            "efficiency": summary.payout_success_rate,
            "risk": summary.refund_rate,
            "liquidity": summary.outstanding_host_balance,
        }
        scores = {
            name: round(health_score(values[name], threshold, inverse), 2)
            for name, (threshold, inverse) in HEALTH_THRESHOLDS.items()
        }
        overall = round(sum(scores.values()) / len(scores), 2)
        return HealthScores(**scores, overall=overall, band=health_band(overall))


__all__ = [
    "BookingAnalysis",
    "FinancialSummary",
    "HealthScores",
    "HostRanking",
    "MethodBreakdown",
    "Metrics",
    "MonthlyBucket",
    "ReconciliationEngine",
    "health_band",
    "health_score",
]
