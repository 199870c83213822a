"""
Settlement arithmetic for bookings.

All amounts are Decimal major units with two places. The service fee is
rounded half-up to the cent and the host payout is the exact remainder,
so fee + payout always equals the total.

Usage:
    from bookings.fees import calculate_fee_split, calculate_commission

    split = calculate_fee_split(Decimal("1000"), Decimal("20"))
    split.service_fee  # Decimal("200.00")
    split.host_payout  # Decimal("800.00")

    calculate_commission(Decimal("1000"), Decimal("20"), Decimal("5"))
    # Decimal("10.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a two-place Decimal."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeSplit:
    total: Decimal
    service_fee: Decimal
    host_payout: Decimal
    service_fee_rate: Decimal


def calculate_fee_split(total, service_fee_rate) -> FeeSplit:
    """
    Split a booking total into platform fee and host payout.

    Args:
        total: Confirmed booking amount
        service_fee_rate: Percentage, e.g. Decimal("20")

    Raises:
        ValueError: Negative total, or a rate outside 0-100
    """
    total = to_money(total)
    rate = Decimal(str(service_fee_rate))
    if total < 0:
        raise ValueError("Booking total cannot be negative")
    if rate < 0 or rate > HUNDRED:
        raise ValueError(f"Service fee rate must be between 0 and 100, got {rate}")

    service_fee = (total * rate / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return FeeSplit(
        total=total,
        service_fee=service_fee,
        host_payout=total - service_fee,
        service_fee_rate=rate,
    )


def calculate_commission(total, service_fee_rate, commission_rate) -> Decimal:
    """Referrer commission: total x fee% x commission%, rounded to the cent."""
    total = to_money(total)
    fee_rate = Decimal(str(service_fee_rate))
    commission_rate = Decimal(str(commission_rate))
    return (total * fee_rate / HUNDRED * commission_rate / HUNDRED).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def compute_payout_schedule(
    visit_date: date | datetime | None,
    now: datetime | None = None,
    lead_hours: int = 48,
) -> datetime:
    """
    When a host payout for a visit becomes due.

    ``lead_hours`` before the start of the visit day, or ``now`` when the
    visit date is missing or that moment has already passed.
    """
    now = now or timezone.now()
    if visit_date is None:
        return now

    if isinstance(visit_date, datetime):
        visit_at = visit_date
    else:
        visit_at = datetime.combine(visit_date, time.min)
    if timezone.is_naive(visit_at):
        visit_at = timezone.make_aware(visit_at, timezone.get_current_timezone())

    scheduled_at = visit_at - timedelta(hours=lead_hours)
    return scheduled_at if scheduled_at > now else now
