"""
Tests for listing lookups used during settlement.
"""

import uuid

import pytest

from listings.models import ItemType
from listings.services import owned_item_ids, resolve_host, resolve_listing
from listings.tests.factories import AdventurePlaceFactory, HotelFactory, TripFactory


class TestItemTypeNormalize:
    def test_known_values_pass_through(self):
        assert ItemType.normalize("hotel") == ItemType.HOTEL
        assert ItemType.normalize(" Trip ") == ItemType.TRIP

    def test_adventure_alias(self):
        """Should map the legacy 'adventure' spelling to adventure_place."""
        assert ItemType.normalize("adventure") == ItemType.ADVENTURE_PLACE

    def test_unknown_value_raises(self):
        with pytest.raises(ValueError, match="Unknown item type"):
            ItemType.normalize("cruise")


@pytest.mark.django_db
class TestResolveListing:
    def test_resolves_trip(self):
        trip = TripFactory()

        assert resolve_listing("trip", trip.id) == trip

    def test_event_resolves_against_trips(self):
        """Should look events up in the trips table."""
        event = TripFactory(is_event=True)

        assert resolve_listing("event", event.id) == event

    def test_adventure_alias_resolves(self):
        place = AdventurePlaceFactory()

        assert resolve_listing("adventure", str(place.id)) == place

    def test_missing_listing_returns_none(self):
        assert resolve_listing("hotel", uuid.uuid4()) is None

    def test_unknown_type_returns_none(self):
        assert resolve_listing("cruise", uuid.uuid4()) is None

    def test_resolve_host_returns_owner(self):
        hotel = HotelFactory()

        assert resolve_host("hotel", hotel.id) == hotel.created_by


@pytest.mark.django_db
class TestOwnedItemIds:
    def test_collects_ids_across_categories(self):
        trip = TripFactory()
        host = trip.created_by
        hotel = HotelFactory(created_by=host)
        HotelFactory()  # someone else's

        assert set(owned_item_ids(host)) == {trip.id, hotel.id}
