"""
Shared HTTP plumbing for payment gateway adapters.

Both gateways are plain JSON-over-HTTPS APIs, so the adapters share one
request path: a pooled ``requests.Session``, a configurable timeout,
timing and structured logging around every call, and translation of
transport failures into the domain exceptions in ``payments.exceptions``.

Error mapping:
    - Connection errors, timeouts, HTTP 5xx -> GatewayUnavailableError
    - HTTP 429                              -> GatewayRateLimitedError
    - Other HTTP 4xx                        -> GatewayRequestError

Configuration (via settings):
    - PAYMENT_GATEWAY_TIMEOUT_SECONDS: per-request timeout (default: 15)
"""

from __future__ import annotations

import logging
import random
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests
from django.conf import settings

from payments.exceptions import (
    GatewayError,
    GatewayRateLimitedError,
    GatewayRequestError,
    GatewayUnavailableError,
)


# =============================================================================
# Money and Masking Helpers
# =============================================================================


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """
    Convert a major-unit amount to the gateway's minor units.

    Example:
        to_minor_units(Decimal("1500.005"))  # 150001
    """
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int | str | None) -> Decimal:
    """Convert gateway minor units (kobo / cents) back to a 2-place Decimal."""
    return (Decimal(str(amount or 0)) / 100).quantize(Decimal("0.01"))


def mask_phone(phone_number: str | None) -> str:
    """Keep only enough of a phone number to correlate log lines."""
    if not phone_number:
        return ""
    if len(phone_number) <= 7:
        return "*" * len(phone_number)
    return f"{phone_number[:4]}****{phone_number[-3:]}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_gateway_error(error: Exception) -> bool:
    """
    Check if a gateway error is worth retrying later.

    Transient errors (timeouts, 5xx, rate limits) leave a payout processing
    for reconciliation; anything else is a permanent rejection.
    """
    if isinstance(error, GatewayError):
        return getattr(error, "is_retryable", False)
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Jitter prevents thundering herd when multiple workers retry simultaneously.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 1: 2.0 - 2.5 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


# =============================================================================
# Base Adapter
# =============================================================================


class GatewayAdapter:
    """
    Base class for JSON gateway adapters.

    Subclasses set ``gateway`` and implement ``_base_url()`` and
    ``_auth_headers()``. All methods are classmethods; the only shared state
    is the pooled HTTP session, which is safe to use from Celery workers.
    """

    gateway: str = "gateway"
    _session: requests.Session | None = None

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _get_session(cls) -> requests.Session:
        if cls._session is None:
            cls._session = requests.Session()
            cls._session.headers.update({"Accept": "application/json"})
        return cls._session

    @classmethod
    def _timeout(cls) -> float:
        return getattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECONDS", 15)

    @classmethod
    def _base_url(cls) -> str:
        raise NotImplementedError

    @classmethod
    def _auth_headers(cls) -> dict[str, str]:
        raise NotImplementedError

    @classmethod
    def _request(
        cls,
        method: str,
        path: str,
        log_context: dict[str, Any],
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Send one request and return the decoded JSON body.

        Raises:
            GatewayUnavailableError: Network failure, timeout or 5xx
            GatewayRateLimitedError: HTTP 429
            GatewayRequestError: Any other non-2xx answer or a non-JSON body
        """
        logger = cls.get_logger()
        url = f"{cls._base_url().rstrip('/')}/{path.lstrip('/')}"
        request_headers = headers if headers is not None else cls._auth_headers()

        start_time = time.time()
        logger.info("Starting gateway operation", extra=log_context)

        try:
            response = cls._get_session().request(
                method,
                url,
                json=json,
                params=params,
                headers=request_headers,
                auth=auth,
                timeout=cls._timeout(),
            )
        except requests.exceptions.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_transport_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        body = cls._decode(response)
        cls._check_status(response, body, log_context, duration_ms)

        logger.info(
            "Gateway operation completed",
            extra={
                **log_context,
                "http_status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return body

    @staticmethod
    def _decode(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {"data": body}

    @classmethod
    def _error_message(cls, body: dict[str, Any], default: str) -> str:
        return body.get("message") or body.get("errorMessage") or default

    @classmethod
    def _check_status(
        cls,
        response: requests.Response,
        body: dict[str, Any],
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """Translate non-2xx answers to domain exceptions."""
        logger = cls.get_logger()
        status = response.status_code
        log_context = {**log_context, "http_status": status, "duration_ms": duration_ms}

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(f"Rate limited by {cls.gateway}", extra=log_context)
            raise GatewayRateLimitedError(
                f"{cls.gateway} rate limit exceeded. Please retry later.",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                gateway=cls.gateway,
                gateway_code="429",
            )

        if status >= 500:
            logger.error(f"{cls.gateway} server error", extra=log_context)
            raise GatewayUnavailableError(
                cls._error_message(body, f"{cls.gateway} service error. Please retry."),
                gateway=cls.gateway,
                gateway_code=str(body.get("errorCode") or status),
            )

        if status >= 400:
            if status in (401, 403):
                logger.critical(
                    f"{cls.gateway} authentication failed - check credentials",
                    extra=log_context,
                )
            else:
                logger.error(f"Request rejected by {cls.gateway}", extra=log_context)
            raise GatewayRequestError(
                cls._error_message(body, f"{cls.gateway} rejected the request"),
                gateway=cls.gateway,
                gateway_code=str(body.get("errorCode") or status),
            )

        if not body:
            logger.error(f"Non-JSON response from {cls.gateway}", extra=log_context)
            raise GatewayRequestError(
                f"Unexpected response from {cls.gateway}",
                gateway=cls.gateway,
                gateway_code=str(status),
            )

    @classmethod
    def _handle_transport_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate requests exceptions to GatewayUnavailableError.

        A timeout means the request may still have been applied on the
        gateway side; callers that move money must reconcile rather than
        assume failure.
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, requests.exceptions.Timeout):
            logger.error(f"Timeout calling {cls.gateway}", extra=log_context)
            raise GatewayUnavailableError(
                f"{cls.gateway} did not respond in time. Please retry.",
                gateway=cls.gateway,
                gateway_code="timeout",
            )

        logger.error(
            f"Connection error to {cls.gateway}",
            extra=log_context,
            exc_info=True,
        )
        raise GatewayUnavailableError(
            f"Could not connect to {cls.gateway}. Please retry.",
            gateway=cls.gateway,
            gateway_code="connection_error",
        )
