"""
Tests for optimistic locking utilities.

Tests check_version and the Payout version counter used to refuse
decisions made on a stale read.
"""

import uuid

import pytest
from django.db import transaction

from core.exceptions import NotFoundError
from payments.exceptions import InvalidTransitionError, StaleRecordError
from payments.locks import check_version
from payments.models import Payout
from payments.services import PayoutOrchestrator
from payments.state_machines import PayoutStatus


class TestCheckVersion:
    """Tests for check_version function."""

    def test_returns_instance_when_version_matches(self, pending_payout):
        with transaction.atomic():
            result = check_version(Payout, pending_payout.pk, pending_payout.version)

        assert result.pk == pending_payout.pk
        assert result.version == pending_payout.version

    def test_raises_stale_record_when_version_mismatch(self, pending_payout):
        with pytest.raises(StaleRecordError) as exc_info:
            check_version(Payout, pending_payout.pk, expected_version=999)

        assert "has been modified" in str(exc_info.value)
        assert exc_info.value.details["pk"] == str(pending_payout.pk)
        assert exc_info.value.details["expected_version"] == 999
        assert exc_info.value.details["current_version"] == pending_payout.version

    def test_raises_not_found_when_record_missing(self, db):
        fake_pk = uuid.uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            check_version(Payout, fake_pk, expected_version=1)

        assert exc_info.value.error_code == "PAYOUT_NOT_FOUND"
        assert exc_info.value.details["pk"] == str(fake_pk)


class TestVersionFieldBehavior:
    def test_new_payout_starts_at_version_one(self, pending_payout):
        assert pending_payout.version == 1

    def test_save_increments_version(self, pending_payout):
        pending_payout.metadata = {"note": "edited"}
        pending_payout.save()

        assert pending_payout.version == 2

    def test_version_is_an_int_after_save(self, pending_payout):
        pending_payout.save()
        pending_payout.save()

        assert isinstance(pending_payout.version, int)
        assert pending_payout.version == 3


class TestStaleDecisions:
    """A command decided on an old read must not overwrite a newer state."""

    def test_stale_reject_is_refused(self, pending_payout):
        stale = Payout.objects.get(pk=pending_payout.pk)

        # Another operator rejects first
        PayoutOrchestrator.reject_payout(pending_payout.pk, "Duplicate", actor="other")

        with pytest.raises(StaleRecordError):
            PayoutOrchestrator._apply_transition(stale, "reject", "ops", reason="Late")

        assert Payout.objects.get(pk=pending_payout.pk).rejection_reason == "Duplicate"

    def test_second_reject_after_fresh_read_is_invalid_transition(self, pending_payout):
        PayoutOrchestrator.reject_payout(pending_payout.pk, "Duplicate", actor="ops")

        with pytest.raises(InvalidTransitionError):
            PayoutOrchestrator.reject_payout(pending_payout.pk, "Again", actor="ops")

        payout = Payout.objects.get(pk=pending_payout.pk)
        assert payout.status == PayoutStatus.REJECTED
        assert payout.audit_entries.count() == 1
