"""
Pending payment status poller.

Watches one PendingPayment until it becomes terminal, times out, or is
cancelled. The poller only reads the store; the status itself is moved by
the callback, the verify call, or the single gateway query the poller
makes when its time runs out.

Outcomes:
    completed     - the store reports completed
    failed        - the store reports failed
    timeout       - time ran out and the final query did not resolve it
    rate_limited  - time ran out and the final query was throttled
    cancelled     - cancel() was called (client went away)

Usage:
    from payments.services import StatusPoller

    result = StatusPoller("ws_CO_191220191020363925").run()
    result.outcome  # "completed"
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from django.conf import settings

from core.services import BaseService

from payments.exceptions import (
    GatewayError,
    GatewayRateLimitedError,
    PaymentNotFoundError,
)
from payments.models import PendingPayment
from payments.state_machines import PendingPaymentStatus


class PollOutcome:
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    CANCELLED = "cancelled"


@dataclass
class PollResult:
    outcome: str
    reference: str
    status: str
    attempts: int
    elapsed: float
    booking_id: str | None = None
    retry_after: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome in (PollOutcome.COMPLETED, PollOutcome.FAILED)

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome,
            "reference": self.reference,
            "status": self.status,
            "attempts": self.attempts,
            "elapsed": round(self.elapsed, 2),
            "booking_id": self.booking_id,
            "retry_after": self.retry_after,
        }


class StatusPoller(BaseService):
    """
    Poll a PendingPayment at a fixed interval.

    Args:
        reference: checkout_reference to watch
        interval: Seconds between reads (PAYMENT_STATUS_POLL_INTERVAL_SECONDS)
        timeout: Total seconds before the final gateway query
            (PAYMENT_STATUS_POLL_TIMEOUT_SECONDS)
        clock: Monotonic clock, injectable for tests
        sleep: Wait function taking seconds; defaults to waiting on the
            cancel event so cancel() interrupts the wait
        cancel_event: Shared event for cancelling from another thread
        query_gateway: Final direct query, defaults to
            PaymentConfirmationService.query_gateway
    """

    def __init__(
        self,
        reference: str,
        interval: float | None = None,
        timeout: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
        cancel_event: threading.Event | None = None,
        query_gateway: Callable[[str], object] | None = None,
    ) -> None:
        self.reference = reference
        self.interval = (
            interval if interval is not None else settings.PAYMENT_STATUS_POLL_INTERVAL_SECONDS
        )
        self.timeout = (
            timeout if timeout is not None else settings.PAYMENT_STATUS_POLL_TIMEOUT_SECONDS
        )
        self.clock = clock
        self.cancel_event = cancel_event or threading.Event()
        self.sleep = sleep or self.cancel_event.wait
        if query_gateway is None:
            from payments.services.confirmation import PaymentConfirmationService

            query_gateway = PaymentConfirmationService.query_gateway
        self.query_gateway = query_gateway
        self.attempts = 0

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def _read_status(self) -> str:
        status = (
            PendingPayment.objects.filter(checkout_reference=self.reference)
            .values_list("status", flat=True)
            .first()
        )
        if status is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"reference": self.reference},
            )
        return status

    def _booking_id(self) -> str | None:
        from bookings.models import Booking

        booking_id = (
            Booking.objects.filter(checkout_reference=self.reference)
            .values_list("id", flat=True)
            .first()
        )
        return str(booking_id) if booking_id else None

    def _result(self, outcome: str, status: str, started: float, **kwargs) -> PollResult:
        return PollResult(
            outcome=outcome,
            reference=self.reference,
            status=status,
            attempts=self.attempts,
            elapsed=self.clock() - started,
            **kwargs,
        )

    def _terminal_result(self, status: str, started: float) -> PollResult | None:
        if status == PendingPaymentStatus.COMPLETED:
            return self._result(
                PollOutcome.COMPLETED, status, started, booking_id=self._booking_id()
            )
        if status == PendingPaymentStatus.FAILED:
            return self._result(PollOutcome.FAILED, status, started)
        return None

    def run(self) -> PollResult:
        """
        Poll until terminal, timed out or cancelled.

        Raises:
            PaymentNotFoundError: Unknown reference
        """
        logger = self.get_logger()
        started = self.clock()
        deadline = started + self.timeout

        while True:
            if self.cancelled:
                logger.info(
                    "Status polling cancelled",
                    extra={"reference": self.reference, "attempts": self.attempts},
                )
                return self._result(PollOutcome.CANCELLED, PendingPaymentStatus.PENDING, started)

            self.attempts += 1
            status = self._read_status()
            result = self._terminal_result(status, started)
            if result is not None:
                return result

            if self.clock() >= deadline:
                break
            self.sleep(min(self.interval, max(deadline - self.clock(), 0)))

        return self._final_query(started)

    def _final_query(self, started: float) -> PollResult:
        logger = self.get_logger()
        try:
            self.query_gateway(self.reference)
        except GatewayRateLimitedError as e:
            logger.info(
                "Final status query rate limited",
                extra={"reference": self.reference, "retry_after": e.retry_after},
            )
            return self._result(
                PollOutcome.RATE_LIMITED,
                PendingPaymentStatus.PENDING,
                started,
                retry_after=e.retry_after,
            )
        except GatewayError as e:
            logger.warning(
                f"Final status query failed: {type(e).__name__}",
                extra={"reference": self.reference, "error_code": e.error_code},
            )

        status = self._read_status()
        result = self._terminal_result(status, started)
        if result is not None:
            return result

        logger.info(
            "Status polling timed out",
            extra={"reference": self.reference, "attempts": self.attempts},
        )
        return self._result(PollOutcome.TIMEOUT, status, started)
