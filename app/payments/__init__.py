"""
Payments app for host payouts and platform reconciliation.

This app handles:
- Payout requests, fees and method limits
- Payout approval, completion, rejection and failure
- Disbursement through the PayMongo API
- Batch disbursement
- Platform earnings metrics and financial report export

Usage:
    from payments.services import PayoutOrchestrator

    result = PayoutOrchestrator.approve_payout(payout_id, "TX123", actor="ops")

    from payments.services import get_platform_earnings

    metrics = get_platform_earnings("quarter")
"""
