"""
End-to-end operator workflows through the admin API.
"""

from decimal import Decimal

from django.urls import reverse
from rest_framework import status

from payments.models import Payout
from payments.state_machines import PayoutStatus

GCASH_RECIPIENT = {"account_number": "09171234567", "account_name": "Maria Santos"}


def submit(client, amount, method="gcash", recipient=None, host_id=21):
    return client.post(
        reverse("payments:payout-list"),
        {
            "host_id": host_id,
            "amount": amount,
            "method": method,
            "recipient": recipient or GCASH_RECIPIENT,
        },
        format="json",
    )


def test_payout_lifecycle_and_report(api_client, provider):
    created = submit(api_client, "5000.00")
    assert created.status_code == status.HTTP_201_CREATED
    payout_id = created.data["id"]

    approved = api_client.post(
        reverse("payments:payout-approve", kwargs={"pk": payout_id}),
        {"transaction_ref": "TX-5000"},
        format="json",
    )
    assert approved.data["status"] == PayoutStatus.PROCESSING

    completed = api_client.post(
        reverse("payments:payout-complete", kwargs={"pk": payout_id}),
        {},
        format="json",
    )
    assert completed.data["status"] == PayoutStatus.COMPLETED
    assert [(e["from_status"], e["to_status"]) for e in completed.data["audit_entries"]] == [
        ("", "pending"),
        ("pending", "approved"),
        ("approved", "processing"),
        ("processing", "completed"),
    ]

    stats = api_client.get(reverse("payments:payout-stats"))
    assert stats.data["completed_count"] == 1
    assert stats.data["total_fees_paid"] == "15.00"

    earnings = api_client.get(reverse("payments:earnings"), {"period": "all"})
    assert earnings.data["summary"]["payout_fee_revenue"] == "15.00"
    assert earnings.data["method_breakdown"][0]["method"] == "gcash"


def test_batch_with_one_bad_recipient(api_client, provider):
    from payments.adapters import ProviderResult

    ids = [
        submit(api_client, "1000.00", host_id=host_id).data["id"]
        for host_id in (31, 32, 33)
    ]

    def create_payout(payout):
        if payout.host_id == 32:
            return ProviderResult.failed("Recipient account not found", code=404)
        return ProviderResult.ok({"id": f"po_{payout.host_id}"})

    provider.create_payout.side_effect = create_payout

    response = api_client.post(reverse("payments:payout-batch"), {"payout_ids": ids}, format="json")

    assert response.status_code == status.HTTP_200_OK
    assert len(response.data["successful"]) == 2
    assert len(response.data["failed"]) == 1
    assert response.data["failed"][0]["error"] == "Recipient account not found"
    statuses = dict(Payout.objects.values_list("host_id", "status"))
    assert statuses == {
        31: PayoutStatus.PROCESSING,
        32: PayoutStatus.PENDING,
        33: PayoutStatus.PROCESSING,
    }


def test_rejected_payout_leaves_no_revenue(api_client, provider):
    payout_id = submit(api_client, "2500.00").data["id"]

    api_client.post(
        reverse("payments:payout-reject", kwargs={"pk": payout_id}),
        {"reason": "Host account under review"},
        format="json",
    )

    payout = Payout.objects.get(pk=payout_id)
    assert payout.status == PayoutStatus.REJECTED
    assert payout.fee == Decimal("15.00")
    earnings = api_client.get(reverse("payments:earnings"), {"period": "all"})
    assert earnings.data["summary"]["payout_fee_revenue"] == "0.00"
    assert earnings.data["summary"]["payout_success_rate"] == 0.0
