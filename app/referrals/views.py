"""
DRF views for referrals.

Endpoints:
    GET  /api/v1/referrals/settings/ - Current rates (admin)
    PUT  /api/v1/referrals/settings/ - Replace rates (admin)
    POST /api/v1/referrals/track-click/ - Record a referral link click
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from core.views import error_response

from referrals.models import ReferralSettings
from referrals.serializers import ReferralSettingsSerializer, TrackClickSerializer
from referrals.services import ReferralSettingsService, ReferralTrackingService

logger = logging.getLogger(__name__)


class ReferralSettingsView(APIView):
    """
    Platform service fee and commission rates.

    PUT body: all ten ``{category}_service_fee`` / ``{category}_commission_rate``
    percentages. Rejected with 400 when any commission exceeds its fee.
    """

    permission_classes = [IsAdminUser]

    def get(self, request):
        instance = ReferralSettings.load()
        return Response(ReferralSettingsService.as_dict(instance))

    def put(self, request):
        serializer = ReferralSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            instance = ReferralSettingsService.update_settings(serializer.validated_data)
        except BaseApplicationError as e:
            return error_response(e)

        logger.info(
            "Referral settings saved by admin",
            extra={"user_id": str(request.user.pk), "version": instance.version},
        )
        return Response(ReferralSettingsService.as_dict(instance))


class TrackClickView(APIView):
    """
    Record a click on a referral link.

    Open to anonymous visitors; a signed-in visitor is stored as the
    referred user (and may not refer themselves).

    Returns:
        {"success": true, "data": {"trackingId": "...", "referrerId": "..."}}
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = TrackClickSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        referred_user = request.user if request.user.is_authenticated else None
        try:
            result = ReferralTrackingService.track_click(
                referred_user=referred_user,
                **serializer.validated_data,
            )
        except BaseApplicationError as e:
            return error_response(e)
        return Response(result.to_response(), status=status.HTTP_201_CREATED)
