"""
Pytest fixtures for payment tests.

Fixtures provide payouts in each lifecycle state (reached through the real
transitions), a mocked disbursement provider and an authenticated operator
API client. Redis is mocked for every test so payout and batch locks always
acquire unless a test says otherwise.

Usage:
    def test_complete(processing_payout, provider):
        result = PayoutOrchestrator.complete_payout(processing_payout.id)
        assert result.data.status == PayoutStatus.COMPLETED
"""

from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from payments.adapters import PayMongoAdapter, ProviderResult
from payments.services import PayoutOrchestrator
from payments.tests.factories import PayoutFactory, StaffUserFactory


# =============================================================================
# Mock Redis Fixture
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis(mocker):
    """
    Mock Redis client behind DistributedLock.

    set() succeeds (lock acquired) and eval() returns 1 (lock released).
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.eval.return_value = 1

    mocker.patch(
        "payments.locks.get_redis_connection",
        return_value=mock_client,
    )

    return mock_client


# =============================================================================
# Provider Fixture
# =============================================================================


@pytest.fixture
def provider():
    """
    Mock PayMongoAdapter installed on PayoutOrchestrator.

    By default every payout is accepted with a sequential provider id and
    every bank account validates.
    """
    adapter = MagicMock(spec=PayMongoAdapter)
    counter = {"n": 0}

    def create_payout(payout):
        counter["n"] += 1
        return ProviderResult.ok(
            {"id": f"po_{counter['n']:04d}", "attributes": {"status": "pending"}}
        )

    adapter.create_payout.side_effect = create_payout
    adapter.retrieve_payout.return_value = ProviderResult.ok(
        {"id": "po_0001", "attributes": {"status": "processing"}}
    )
    adapter.validate_bank_account.return_value = ProviderResult.ok(
        {"valid": True, "account_name": "Juan Dela Cruz"}
    )

    PayoutOrchestrator.set_provider_adapter(adapter)
    yield adapter
    PayoutOrchestrator.set_provider_adapter(None)


# =============================================================================
# Payout State Fixtures
# =============================================================================


@pytest.fixture
def pending_payout(db):
    return PayoutFactory()


@pytest.fixture
def approved_payout(db):
    payout = PayoutFactory()
    payout.approve(transaction_ref="TX-APPROVED")
    payout.save()
    return payout


@pytest.fixture
def processing_payout(db):
    payout = PayoutFactory()
    payout.approve(transaction_ref="TX-PROCESSING")
    payout.mark_processing(provider_payout_id="po_processing")
    payout.save()
    return payout


@pytest.fixture
def completed_payout(db):
    payout = PayoutFactory()
    payout.approve(transaction_ref="TX-COMPLETED")
    payout.mark_processing(provider_payout_id="po_completed")
    payout.save()
    payout.complete(proof_url="https://example.com/proof.png")
    payout.save()
    return payout


@pytest.fixture
def rejected_payout(db):
    payout = PayoutFactory()
    payout.reject(reason="Duplicate request")
    payout.save()
    return payout


@pytest.fixture
def failed_payout(db):
    payout = PayoutFactory()
    payout.fail(reason="Account suspended")
    payout.save()
    return payout


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def operator(db):
    """Staff user acting as payout operator."""
    return StaffUserFactory(username="ops")


@pytest.fixture
def api_client(operator):
    """API client authenticated as the operator."""
    client = APIClient()
    client.force_authenticate(user=operator)
    return client


@pytest.fixture
def anonymous_client():
    return APIClient()
