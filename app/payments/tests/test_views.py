"""
Tests for the payments admin API.
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.urls import reverse
from rest_framework import status

from payments.adapters import ProviderResult
from payments.models import Payout
from payments.state_machines import PayoutStatus
from payments.tests.factories import PayoutFactory, StaffUserFactory

BANK_RECIPIENT = {
    "bank_code": "BPI",
    "account_number": "1234567890",
    "account_name": "Juan Dela Cruz",
}


def detail_url(payout, action=None):
    if action:
        return reverse(f"payments:payout-{action}", kwargs={"pk": payout.pk})
    return reverse("payments:payout-detail", kwargs={"pk": payout.pk})


# =============================================================================
# Permissions
# =============================================================================


class TestPermissions:
    def test_anonymous_is_rejected(self, anonymous_client, db):
        response = anonymous_client.get(reverse("payments:payout-list"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_non_staff_is_forbidden(self, db):
        from rest_framework.test import APIClient

        client = APIClient()
        client.force_authenticate(user=StaffUserFactory(is_staff=False))

        response = client.get(reverse("payments:payout-list"))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Payout Collection
# =============================================================================


class TestPayoutList:
    def test_lists_newest_first(self, api_client, pending_payout, completed_payout):
        response = api_client.get(reverse("payments:payout-list"))

        assert response.status_code == status.HTTP_200_OK
        ids = [item["id"] for item in response.data["results"]]
        assert set(ids) == {str(pending_payout.id), str(completed_payout.id)}

    def test_filters_by_status(self, api_client, pending_payout, completed_payout):
        response = api_client.get(reverse("payments:payout-list"), {"status": "completed"})

        assert [item["id"] for item in response.data["results"]] == [str(completed_payout.id)]
        assert response.data["results"][0]["is_terminal"] is True

    def test_invalid_filter_is_400(self, api_client, db):
        response = api_client.get(reverse("payments:payout-list"), {"status": "bogus"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_FILTERS"


class TestPayoutCreate:
    def test_creates_pending_payout(self, api_client):
        response = api_client.post(
            reverse("payments:payout-list"),
            {
                "host_id": 12,
                "amount": "5000.00",
                "method": "bank_transfer",
                "recipient": BANK_RECIPIENT,
                "booking_ids": [1, 2],
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == PayoutStatus.PENDING
        assert response.data["fee"] == "25.00"
        assert response.data["net_amount"] == "4975.00"
        assert response.data["audit_entries"][0]["actor"] == "ops"

    def test_below_minimum_is_400(self, api_client):
        response = api_client.post(
            reverse("payments:payout-list"),
            {
                "host_id": 12,
                "amount": "50.00",
                "method": "gcash",
                "recipient": {"account_number": "09171234567", "account_name": "Maria"},
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error"] == "Minimum payout amount for gcash is ₱100"
        assert Payout.objects.count() == 0

    def test_malformed_body_is_400(self, api_client):
        response = api_client.post(reverse("payments:payout-list"), {"host_id": 12}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "amount" in response.data


class TestPayoutRetrieve:
    def test_detail_includes_audit_and_transitions(self, api_client, pending_payout):
        response = api_client.get(detail_url(pending_payout))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["recipient"]["bank_code"] == "BPI"
        assert response.data["available_transitions"] == ["approved", "failed", "rejected"]

    def test_unknown_payout_is_404(self, api_client, db):
        response = api_client.get(reverse("payments:payout-detail", kwargs={"pk": uuid.uuid4()}))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "PAYOUT_NOT_FOUND"


# =============================================================================
# Operator Commands
# =============================================================================


class TestApprove:
    def test_approve(self, api_client, pending_payout, provider):
        response = api_client.post(
            detail_url(pending_payout, "approve"), {"transaction_ref": "TX123"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == PayoutStatus.PROCESSING
        assert response.data["provider_payout_id"] == "po_0001"

    def test_missing_transaction_ref_is_400(self, api_client, pending_payout, provider):
        response = api_client.post(detail_url(pending_payout, "approve"), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        provider.create_payout.assert_not_called()

    def test_provider_refusal_is_502_with_provider_message(self, api_client, pending_payout, provider):
        provider.create_payout.side_effect = None
        provider.create_payout.return_value = ProviderResult.failed(
            "Insufficient balance in PayMongo account", code=400, provider_code="insufficient_balance"
        )

        response = api_client.post(
            detail_url(pending_payout, "approve"), {"transaction_ref": "TX123"}, format="json"
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data["error"] == "Insufficient balance in PayMongo account"
        assert response.data["details"]["status_code"] == 400
        assert Payout.objects.get(pk=pending_payout.pk).status == PayoutStatus.PENDING

    def test_approve_completed_is_409(self, api_client, completed_payout, provider):
        response = api_client.post(
            detail_url(completed_payout, "approve"), {"transaction_ref": "TX123"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "INVALID_STATE_TRANSITION"


class TestCompleteAndReject:
    def test_complete(self, api_client, processing_payout):
        response = api_client.post(
            detail_url(processing_payout, "complete"),
            {"proof_url": "https://example.com/proof.png"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == PayoutStatus.COMPLETED
        assert response.data["proof_url"] == "https://example.com/proof.png"

    def test_complete_without_proof(self, api_client, processing_payout):
        response = api_client.post(detail_url(processing_payout, "complete"), {}, format="json")

        assert response.status_code == status.HTTP_200_OK

    def test_reject(self, api_client, pending_payout):
        response = api_client.post(
            detail_url(pending_payout, "reject"), {"reason": "Duplicate request"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == PayoutStatus.REJECTED
        assert response.data["audit_entries"][-1]["note"] == "Duplicate request"

    def test_reject_without_reason_is_400(self, api_client, pending_payout):
        response = api_client.post(detail_url(pending_payout, "reject"), {"reason": ""}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reject_processing_is_409(self, api_client, processing_payout):
        response = api_client.post(
            detail_url(processing_payout, "reject"), {"reason": "Too late"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT


class TestSync:
    def test_sync(self, api_client, processing_payout, provider):
        provider.retrieve_payout.return_value = ProviderResult.ok(
            {"id": "po_processing", "attributes": {"status": "cancelled"}}
        )

        response = api_client.post(detail_url(processing_payout, "sync"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["changed"] is True
        assert response.data["payout"]["status"] == PayoutStatus.FAILED


# =============================================================================
# Stats and Batch
# =============================================================================


class TestStats:
    def test_stats(self, api_client, pending_payout, completed_payout, failed_payout):
        response = api_client.get(reverse("payments:payout-stats"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["pending_count"] == 1
        assert response.data["total_paid_out"] == "5000.00"
        assert response.data["success_rate"] == 50.0


class TestBatch:
    def test_batch_runs_inline(self, api_client, provider):
        payouts = [PayoutFactory() for _ in range(3)]

        response = api_client.post(
            reverse("payments:payout-batch"),
            {"payout_ids": [str(p.id) for p in payouts]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total"] == 3
        assert len(response.data["successful"]) == 3
        assert response.data["batch_id"].startswith("batch_")

    def test_batch_async_queues_task(self, api_client, pending_payout, mocker):
        delay = mocker.patch(
            "payments.views.disburse_batch_task.delay",
            return_value=MagicMock(id="task-123"),
        )

        response = api_client.post(
            reverse("payments:payout-batch") + "?async=true",
            {"payout_ids": [str(pending_payout.id)]},
            format="json",
        )

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.data["task_id"] == "task-123"
        assert response.data["status"] == "queued"
        args, kwargs = delay.call_args
        assert args == ([str(pending_payout.id)],)
        assert kwargs["actor"] == "ops"
        assert kwargs["batch_id"] == response.data["batch_id"]

    def test_duplicate_ids_rejected(self, api_client, pending_payout):
        response = api_client.post(
            reverse("payments:payout-batch"),
            {"payout_ids": [str(pending_payout.id)] * 2},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_concurrent_batch_is_409(self, api_client, pending_payout, provider, mock_redis):
        mock_redis.set.return_value = False

        response = api_client.post(
            reverse("payments:payout-batch"),
            {"payout_ids": [str(pending_payout.id)]},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Bank Accounts and Earnings
# =============================================================================


class TestBankAccountValidation:
    def test_valid(self, api_client, provider):
        response = api_client.post(
            reverse("payments:bank-account-validate"),
            {"bank_code": "BPI", "account_number": "1234567890"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"valid": True, "account_name": "Juan Dela Cruz"}

    def test_provider_error_is_502(self, api_client, provider):
        provider.validate_bank_account.return_value = ProviderResult.failed(
            "Service unavailable", code=503
        )

        response = api_client.post(
            reverse("payments:bank-account-validate"),
            {"bank_code": "BPI", "account_number": "1234567890"},
            format="json",
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY


class TestEarnings:
    def test_earnings(self, api_client, completed_payout):
        response = api_client.get(reverse("payments:earnings"), {"period": "all"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["period"] == "all"
        assert response.data["summary"]["payout_fee_revenue"] == "25.00"
        assert len(response.data["monthly_trend"]) == 6
        assert response.data["health"]["band"] in {"Excellent", "Good", "Needs Attention"}

    def test_default_period_is_month(self, api_client, db):
        response = api_client.get(reverse("payments:earnings"))

        assert response.data["period"] == "month"

    def test_invalid_period_is_400(self, api_client, db):
        response = api_client.get(reverse("payments:earnings"), {"period": "decade"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_export_csv(self, api_client, completed_payout):
        response = api_client.get(reverse("payments:earnings-export"), {"period": "year"})

        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Type"].startswith("text/csv")
        assert 'filename="platform-earnings-year-' in response["Content-Disposition"]
        lines = response.content.decode().splitlines()
        assert lines[0] == "PLATFORM FINANCIAL REPORT"
        assert "Metric,Amount,Growth %" in lines
