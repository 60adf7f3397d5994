"""
Payment admin configuration.

Payouts and their audit trail are view-only here: every change goes through
PayoutOrchestrator (or the admin API) so it lands with an audit entry, and
nothing can be deleted.
"""

from django.contrib import admin

from payments.models import BookingRevenueRecord, Payout, PayoutAuditEntry, RefundRecord

__all__ = [
    "BookingRevenueRecordAdmin",
    "PayoutAdmin",
    "PayoutAuditEntryInline",
    "RefundRecordAdmin",
]


class PayoutAuditEntryInline(admin.TabularInline):
    model = PayoutAuditEntry
    extra = 0
    can_delete = False
    fields = ["created_at", "from_status", "to_status", "actor", "note"]
    readonly_fields = fields
    ordering = ["created_at"]

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payout.

    Provides visibility into payout status and history.
    """

    list_display = [
        "id",
        "host_id",
        "amount_display",
        "fee",
        "method",
        "status",
        "transaction_ref",
        "created_at",
    ]
    list_filter = ["status", "method", "created_at"]
    search_fields = [
        "id",
        "host_id",
        "transaction_ref",
        "provider_payout_id",
    ]
    readonly_fields = [
        "id",
        "status",
        "amount",
        "fee",
        "net_amount",
        "currency",
        "provider_payout_id",
        "approved_at",
        "processing_at",
        "completed_at",
        "rejected_at",
        "failed_at",
        "created_at",
        "updated_at",
        "version",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [PayoutAuditEntryInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "host_id", "status", "booking_ids"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "fee", "net_amount", "currency"),
            },
        ),
        (
            "Recipient",
            {
                "fields": ("method", "recipient"),
            },
        ),
        (
            "Provider",
            {
                "fields": ("transaction_ref", "provider_payout_id", "proof_url"),
            },
        ),
        (
            "Status Timestamps",
            {
                "fields": ("approved_at", "processing_at", "completed_at", "rejected_at", "failed_at"),
            },
        ),
        (
            "Outcome",
            {
                "fields": ("rejection_reason", "failure_reason"),
                "classes": ("collapse",),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def amount_display(self, obj: Payout) -> str:
        """Display the amount formatted as currency."""
        return f"₱{obj.amount:,.2f} {obj.currency}"

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        """Payouts are created through the payout request flow."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        """Field edits would bypass the state machine and the audit trail."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payouts (audit trail)."""
        return False


@admin.register(BookingRevenueRecord)
class BookingRevenueRecordAdmin(admin.ModelAdmin):
    list_display = ["booking_id", "host_id", "total_price", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["booking_id", "host_id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]


@admin.register(RefundRecord)
class RefundRecordAdmin(admin.ModelAdmin):
    list_display = ["refund_id", "booking_id", "refund_amount", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["refund_id", "booking_id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
