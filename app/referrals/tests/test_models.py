"""
Tests for ReferralSettings.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from referrals.models import SINGLETON_PK, ReferralSettings


class TestReferralSettingsDefaults:
    def test_defaults_are_20_and_5_percent(self):
        rates = ReferralSettings.defaults().get_category_rates("trip")

        assert rates.service_fee == Decimal("20")
        assert rates.commission_rate == Decimal("5")

    def test_event_has_own_rates(self):
        rates = ReferralSettings.defaults().get_category_rates("event")

        assert rates.item_type == "event"

    def test_adventure_alias(self):
        rates = ReferralSettings.defaults().get_category_rates("adventure")

        assert rates.item_type == "adventure_place"

    def test_unknown_category_raises(self):
        with pytest.raises(ValueError):
            ReferralSettings.defaults().get_category_rates("cruise")


@pytest.mark.django_db
class TestReferralSettingsPersistence:
    def test_load_without_row_returns_defaults(self):
        instance = ReferralSettings.load()

        assert instance._state.adding is True
        assert instance.hotel_service_fee == Decimal("20.00")

    def test_always_saved_as_single_row(self):
        first = ReferralSettings.defaults()
        first.save()
        second = ReferralSettings(trip_service_fee=Decimal("15.00"))
        second.save()

        assert ReferralSettings.objects.count() == 1
        assert ReferralSettings.objects.get().pk == SINGLETON_PK

    def test_unsaved_defaults_replace_existing_row(self):
        first = ReferralSettings.defaults()
        first.save()
        created_at = ReferralSettings.objects.get().created_at

        second = ReferralSettings.defaults()
        second.trip_service_fee = Decimal("16.00")
        second.save()

        row = ReferralSettings.objects.get()
        assert row.created_at == created_at
        assert row.version == 2
        assert row.trip_service_fee == Decimal("16.00")

    def test_version_bumps_on_update(self):
        instance = ReferralSettings.defaults()
        instance.save()
        assert instance.version == 1

        instance.trip_service_fee = Decimal("18.00")
        instance.save()

        assert instance.version == 2
        assert ReferralSettings.rates_for("trip").service_fee == Decimal("18.00")


class TestReferralSettingsClean:
    def test_commission_above_fee_rejected(self):
        instance = ReferralSettings.defaults()
        instance.hotel_service_fee = Decimal("10.00")
        instance.hotel_commission_rate = Decimal("12.00")

        with pytest.raises(ValidationError) as exc_info:
            instance.clean()

        assert "hotel_commission_rate" in exc_info.value.message_dict

    def test_commission_equal_to_fee_allowed(self):
        instance = ReferralSettings.defaults()
        instance.trip_commission_rate = instance.trip_service_fee

        instance.clean()
