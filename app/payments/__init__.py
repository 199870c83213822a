"""
Payments app for M-Pesa and Paystack settlement.

This app handles:
- Payment initiation (STK push, Paystack popup) and pending payment storage
- Confirmation from callbacks, verification and direct status queries
- Scheduled host payouts and manual withdrawals via Paystack transfers
- Paystack webhook event handling

Related apps:
    - bookings: Bookings are materialized from confirmed payments
    - referrals: Commission balances for referrer withdrawals
    - notifications: Payout outcome notifications

Usage:
    from payments.services import PaymentInitiationService

    payment = PaymentInitiationService.initiate_mpesa_payment(
        phone_number="0712345678",
        amount=Decimal("1500"),
        booking_payload=payload,
    )
"""
