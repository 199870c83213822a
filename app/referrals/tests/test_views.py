"""
Tests for referral API views.

Tests cover:
- Admin rate table (GET/PUT /api/v1/referrals/settings/)
- Referral link clicks (POST /api/v1/referrals/track-click/)
"""

import uuid
from decimal import Decimal

import pytest

from referrals.models import ReferralSettings, ReferralTracking

SETTINGS_URL = "/api/v1/referrals/settings/"
TRACK_CLICK_URL = "/api/v1/referrals/track-click/"


def rate_table(**overrides):
    data = {}
    for category in ("trip", "event", "hotel", "adventure_place", "attraction"):
        data[f"{category}_service_fee"] = "20.00"
        data[f"{category}_commission_rate"] = "5.00"
    data.update(overrides)
    return data


# =============================================================================
# Settings
# =============================================================================


@pytest.mark.django_db
class TestReferralSettingsView:
    def test_admin_reads_defaults(self, api_client, admin_user):
        api_client.force_authenticate(admin_user)

        response = api_client.get(SETTINGS_URL)

        assert response.status_code == 200
        assert Decimal(response.data["trip_service_fee"]) == Decimal("20")
        assert Decimal(response.data["trip_commission_rate"]) == Decimal("5")

    def test_admin_updates_rates(self, api_client, admin_user):
        api_client.force_authenticate(admin_user)

        response = api_client.put(
            SETTINGS_URL,
            rate_table(hotel_service_fee="15.00", hotel_commission_rate="4.00"),
            format="json",
        )

        assert response.status_code == 200
        assert ReferralSettings.rates_for("hotel").service_fee == Decimal("15.00")
        assert ReferralSettings.rates_for("hotel").commission_rate == Decimal("4.00")

    def test_commission_above_fee_rejected(self, api_client, admin_user):
        api_client.force_authenticate(admin_user)

        response = api_client.put(
            SETTINGS_URL,
            rate_table(trip_service_fee="5.00", trip_commission_rate="10.00"),
            format="json",
        )

        assert response.status_code == 400
        assert "trip_commission_rate" in response.data
        assert not ReferralSettings.objects.exists()

    def test_rate_above_100_rejected(self, api_client, admin_user):
        api_client.force_authenticate(admin_user)

        response = api_client.put(
            SETTINGS_URL, rate_table(attraction_service_fee="101.00"), format="json"
        )

        assert response.status_code == 400

    def test_non_admin_forbidden(self, api_client, referrer):
        api_client.force_authenticate(referrer)

        response = api_client.get(SETTINGS_URL)

        assert response.status_code == 403

    def test_anonymous_rejected(self, api_client, db):
        response = api_client.get(SETTINGS_URL)

        assert response.status_code in (401, 403)


# =============================================================================
# Track Click
# =============================================================================


@pytest.mark.django_db
class TestTrackClickView:
    def test_anonymous_click_tracked(self, api_client, referrer):
        response = api_client.post(
            TRACK_CLICK_URL,
            {"referral_code": "janedoe", "item_id": str(uuid.uuid4()), "item_type": "trip"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["success"] is True
        tracking = ReferralTracking.objects.get(id=response.data["data"]["trackingId"])
        assert tracking.referrer == referrer
        assert tracking.referred_user is None

    def test_unknown_code_404(self, api_client, db):
        response = api_client.post(
            TRACK_CLICK_URL,
            {"referral_code": "nobody", "item_id": str(uuid.uuid4())},
            format="json",
        )

        assert response.status_code == 404
        assert response.data["error_code"] == "REFERRER_NOT_FOUND"

    def test_self_referral_403(self, api_client, referrer):
        api_client.force_authenticate(referrer)

        response = api_client.post(
            TRACK_CLICK_URL,
            {"referral_code": referrer.referral_code, "item_id": str(uuid.uuid4())},
            format="json",
        )

        assert response.status_code == 403
        assert response.data["error_code"] == "SELF_REFERRAL"
