"""
Tests for the application exception hierarchy and its HTTP rendering.
"""

import pytest

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)
from core.views import error_response, status_for_error
from payments.exceptions import (
    GatewayRateLimitedError,
    GatewayUnavailableError,
    InsufficientBalanceError,
    PaymentNotFoundError,
)


class TestBaseApplicationError:
    def test_default_code(self):
        error = BaseApplicationError("Something broke")

        assert error.message == "Something broke"
        assert error.error_code == "APPLICATION_ERROR"
        assert error.details == {}
        assert str(error) == "[APPLICATION_ERROR] Something broke"

    def test_to_dict_omits_empty_details(self):
        assert NotFoundError("Missing").to_dict() == {
            "error": "Missing",
            "error_code": "NOT_FOUND",
        }

    def test_to_dict_with_details(self):
        error = ValidationError("Bad rates", error_code="RATES", details={"trip": ["too high"]})

        assert error.to_dict() == {
            "error": "Bad rates",
            "error_code": "RATES",
            "details": {"trip": ["too high"]},
        }


class TestStatusForError:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (NotFoundError("x"), 404),
            (PermissionDeniedError("x"), 403),
            (ConflictError("x"), 409),
            (RateLimitError("x"), 429),
            (ExternalServiceError("x"), 502),
            (ValidationError("x"), 400),
            (BaseApplicationError("x"), 400),
        ],
    )
    def test_class_mapping(self, error, expected):
        assert status_for_error(error) == expected

    def test_explicit_status_wins(self):
        assert status_for_error(PaymentNotFoundError("x")) == 404
        assert status_for_error(GatewayUnavailableError("x")) == 502
        assert status_for_error(GatewayRateLimitedError("x")) == 429


class TestErrorResponse:
    def test_body(self):
        response = error_response(InsufficientBalanceError.for_available("120"))

        assert response.status_code == 400
        assert response.data["success"] is False
        assert response.data["error"] == "Insufficient balance. Available: KES 120.00"
        assert response.data["error_code"] == "INSUFFICIENT_BALANCE"

    def test_retry_after_header(self):
        response = error_response(GatewayRateLimitedError("Slow down", retry_after=7.6))

        assert response.status_code == 429
        assert response["Retry-After"] == "7"

    def test_no_retry_after_when_unknown(self):
        response = error_response(RateLimitError("Slow down"))

        assert response.status_code == 429
        assert not response.has_header("Retry-After")
