"""
DRF views for bookings.

Endpoints:
    POST /api/v1/bookings/free/ - Book an item that costs nothing
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from core.views import error_response

from bookings.serializers import BookingSerializer
from bookings.services import BookingMaterializer


class FreeBookingView(APIView):
    """
    Create a zero-amount booking immediately, without a payment.

    Request body: a booking payload with ``total_amount`` 0. Paid
    bookings go through the payment endpoints instead.
    """

    permission_classes = [AllowAny]

    def post(self, request):
        payload = request.data
        try:
            is_free = float(payload.get("total_amount", 0) or 0) == 0
        except (TypeError, ValueError):
            is_free = False
        if not is_free:
            return Response(
                {
                    "success": False,
                    "error": "Only free bookings can be created without payment",
                    "error_code": "PAYMENT_REQUIRED",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        user = request.user if request.user.is_authenticated else None
        try:
            booking = BookingMaterializer.create_free_booking(payload, user=user)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {"success": True, "data": BookingSerializer(booking).data},
            status=status.HTTP_201_CREATED,
        )
