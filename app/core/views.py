"""
Infrastructure endpoints and shared API error rendering.

- health_check: Liveness/readiness probe
- error_response: Map a BaseApplicationError to a DRF Response
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check for Docker, Kubernetes probes and load balancers.

    The database is required: payment confirmations cannot be recorded
    without it, so a failed query answers 503. The cache only backs the
    M-Pesa token and the status-query throttle, so a cache outage is
    reported but the service stays "healthy".

    Example Response:
        {
            "status": "healthy",
            "database": "connected",
            "cache": "connected"
        }
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check database query failed")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"

    cache.set("health_check", "ok", timeout=1)
    if cache.get("health_check") == "ok":
        health_status["cache"] = "connected"
    else:
        health_status["cache"] = "disconnected"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JsonResponse(health_status, status=status_code)


# Most specific first; anything else is a 400.
ERROR_STATUS_CODES = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (RateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def status_for_error(exc: BaseApplicationError) -> int:
    explicit = getattr(exc, "http_status", None)
    if explicit:
        return explicit
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_response(exc: BaseApplicationError) -> Response:
    """
    Render a domain error as ``{"success": false, "error": ..., "error_code": ...}``.

    Exceptions may set ``http_status`` to override the class mapping.
    Rate-limit responses carry a Retry-After header when the error knows it.
    """
    body = {"success": False, **exc.to_dict()}
    response = Response(body, status=status_for_error(exc))
    retry_after = exc.details.get("retry_after") if exc.details else None
    if response.status_code == status.HTTP_429_TOO_MANY_REQUESTS and retry_after:
        response["Retry-After"] = str(int(retry_after))
    return response
