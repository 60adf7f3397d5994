"""
DRF serializers for the payments app.

This module provides serializers for:
- Payout display (list and detail with audit trail)
- Operator command requests (create, approve, complete, reject, batch)
- Bank account pre-flight validation
- Payout statistics and platform earnings responses

Request serializers only check shape. Business rules (bounds, recipient
fields, allowed transitions) are enforced by the services so that API and
non-API callers get the same answers.
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payout, PayoutAuditEntry
from payments.services.reporting import DEFAULT_PERIOD, PERIODS
from payments.state_machines import PayoutMethod


# =============================================================================
# Payout Display
# =============================================================================


class PayoutAuditEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutAuditEntry
        fields = ["id", "from_status", "to_status", "actor", "note", "created_at"]
        read_only_fields = fields


class PayoutSerializer(serializers.ModelSerializer):
    """Payout for list responses."""

    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = Payout
        fields = [
            "id",
            "host_id",
            "booking_ids",
            "amount",
            "fee",
            "net_amount",
            "currency",
            "method",
            "status",
            "transaction_ref",
            "provider_payout_id",
            "is_terminal",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutDetailSerializer(PayoutSerializer):
    """Payout with recipient, lifecycle fields and audit trail."""

    audit_entries = PayoutAuditEntrySerializer(many=True, read_only=True)
    available_transitions = serializers.SerializerMethodField()

    class Meta(PayoutSerializer.Meta):
        fields = PayoutSerializer.Meta.fields + [
            "recipient",
            "proof_url",
            "rejection_reason",
            "failure_reason",
            "approved_at",
            "processing_at",
            "completed_at",
            "rejected_at",
            "failed_at",
            "version",
            "metadata",
            "available_transitions",
            "audit_entries",
        ]
        read_only_fields = fields

    def get_available_transitions(self, obj: Payout) -> list[str]:
        return sorted(obj.reachable_statuses)


# =============================================================================
# Command Requests
# =============================================================================


class PayoutCreateSerializer(serializers.Serializer):
    host_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PayoutMethod.choices)
    recipient = serializers.DictField(child=serializers.CharField(allow_blank=True))
    booking_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ApprovePayoutSerializer(serializers.Serializer):
    transaction_ref = serializers.CharField(
        max_length=100,
        help_text="Operator-supplied reference attesting the approval",
    )


class CompletePayoutSerializer(serializers.Serializer):
    proof_url = serializers.URLField(
        required=False,
        allow_null=True,
        allow_blank=True,
        help_text="Link to proof of transfer (optional)",
    )


class RejectPayoutSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class BatchDisbursementSerializer(serializers.Serializer):
    payout_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=500,
    )

    def validate_payout_ids(self, value: list) -> list:
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Duplicate payout ids in batch.")
        return value


class BankAccountValidationSerializer(serializers.Serializer):
    bank_code = serializers.CharField(max_length=32)
    account_number = serializers.CharField(max_length=64)


class EarningsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=PERIODS, required=False, default=DEFAULT_PERIOD)


# =============================================================================
# Responses
# =============================================================================


class PayoutStatsSerializer(serializers.Serializer):
    pending_count = serializers.IntegerField()
    approved_count = serializers.IntegerField()
    processing_count = serializers.IntegerField()
    completed_count = serializers.IntegerField()
    rejected_count = serializers.IntegerField()
    failed_count = serializers.IntegerField()
    total_paid_out = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_fees_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    in_flight_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    success_rate = serializers.FloatField()


class BatchDisbursementResultSerializer(serializers.Serializer):
    batch_id = serializers.CharField()
    successful = serializers.ListField(child=serializers.DictField())
    failed = serializers.ListField(child=serializers.DictField())
    total = serializers.IntegerField()


def _money():
    return serializers.DecimalField(max_digits=16, decimal_places=2, coerce_to_string=True)


class MonthlyBucketSerializer(serializers.Serializer):
    month = serializers.CharField()
    booking_revenue = _money()
    platform_commission = _money()
    payout_fees = _money()
    refunds = _money()
    net_revenue = _money()
    booking_count = serializers.IntegerField()
    payout_count = serializers.IntegerField()


class MethodBreakdownSerializer(serializers.Serializer):
    method = serializers.CharField()
    count = serializers.IntegerField()
    total_amount = _money()
    total_fees = _money()
    average_fee = _money()


class HostRankingSerializer(serializers.Serializer):
    host_id = serializers.IntegerField()
    total_earnings = _money()
    total_fees = _money()
    payout_count = serializers.IntegerField()
    booking_count = serializers.IntegerField()
    average_booking_value = _money()


class BookingAnalysisSerializer(serializers.Serializer):
    status_distribution = serializers.DictField(child=serializers.IntegerField())
    total_revenue = _money()
    completed_revenue = _money()
    average_booking_value = _money()
    completion_rate = serializers.FloatField()


class FinancialSummarySerializer(serializers.Serializer):
    total_booking_revenue = _money()
    commission_rate = serializers.DecimalField(max_digits=5, decimal_places=4)
    platform_commission = _money()
    payout_fee_revenue = _money()
    total_platform_revenue = _money()
    total_refunded = _money()
    pending_refunds = _money()
    net_platform_revenue = _money()
    host_earnings = _money()
    paid_to_hosts = _money()
    outstanding_host_balance = _money()
    payout_success_rate = serializers.FloatField()
    refund_rate = serializers.FloatField()
    revenue_growth = serializers.FloatField()


class HealthScoresSerializer(serializers.Serializer):
    revenue = serializers.FloatField()
    efficiency = serializers.FloatField()
    risk = serializers.FloatField()
    liquidity = serializers.FloatField()
    overall = serializers.FloatField()
    band = serializers.CharField()


class PlatformEarningsSerializer(serializers.Serializer):
    period = serializers.CharField()
    since = serializers.DateTimeField(allow_null=True)
    generated_at = serializers.DateTimeField()
    summary = FinancialSummarySerializer()
    monthly_trend = MonthlyBucketSerializer(many=True)
    method_breakdown = MethodBreakdownSerializer(many=True)
    top_hosts = HostRankingSerializer(many=True)
    booking_analysis = BookingAnalysisSerializer()
    health = HealthScoresSerializer()
