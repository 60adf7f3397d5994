"""
Tests for payments app.

This package contains test modules for:
- test_policy.py / test_validators.py: fee policy and payout validation
- test_state_transitions.py / test_orchestrator.py: payout lifecycle
- test_batch_disburser.py: batch disbursement
- test_reconciliation_engine.py / test_reporting.py: earnings and CSV export
- test_views.py / test_integration.py: admin API endpoints

Usage:
    pytest payments/tests/
    pytest payments/tests/test_orchestrator.py
"""
