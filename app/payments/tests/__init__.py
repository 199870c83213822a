"""
Tests for payments app.

This package contains test modules for:
- test_models.py, test_state_transitions.py: PendingPayment, Payout, BankDetails
- test_initiation.py, test_confirmation.py, test_status_poller.py: collection flow
- test_payout_processor.py, test_payout_state.py, test_withdrawal.py: payouts
- test_reconciliation.py, test_tasks.py: repair sweeps and Celery tasks
- test_views.py: API endpoint tests

Gateway adapters and the Paystack webhook have their own test packages
(payments/adapters/tests, payments/webhooks/tests).

Usage:
    pytest payments/tests/
    pytest payments/tests/test_withdrawal.py
"""
