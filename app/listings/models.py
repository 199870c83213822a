"""
Listing models.

Four tables hold bookable inventory. Events are trips with ``is_event``
set, so ``event`` bookings resolve against the trips table.

Related files:
    - services.py: host resolution by item type
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ItemType(models.TextChoices):
    """
    Bookable item categories.

    Each category has its own service fee and commission rate in
    ReferralSettings.
    """

    TRIP = "trip", "Trip"
    EVENT = "event", "Event"
    HOTEL = "hotel", "Hotel"
    ADVENTURE_PLACE = "adventure_place", "Adventure Place"
    ATTRACTION = "attraction", "Attraction"

    @classmethod
    def normalize(cls, value: str) -> str:
        """
        Map client spellings onto a stored item type.

        ``adventure`` is what older booking payloads send for adventure
        places.

        Raises:
            ValueError: If the value is not a known item type
        """
        value = (value or "").strip().lower()
        if value == "adventure":
            return cls.ADVENTURE_PLACE
        if value not in cls.values:
            raise ValueError(f"Unknown item type: {value!r}")
        return value


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    Abstract listing owned by a host.

    Fields:
        name: Display name (echoed on receipts as itemName)
        created_by: Host who owns the listing and receives payouts
        email: Contact address for booking notifications
        location: Free-text location
        is_approved: Set by an admin after review
    """

    name = models.CharField(max_length=200)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)s_listings",
        help_text="Host who owns this listing",
    )
    email = models.EmailField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    is_approved = models.BooleanField(default=False)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class Trip(Listing):
    """Trips and events. Events carry a fixed date."""

    is_event = models.BooleanField(default=False)
    date = models.DateField(null=True, blank=True)

    class Meta(Listing.Meta):
        verbose_name = "Trip"


class Hotel(Listing):
    class Meta(Listing.Meta):
        verbose_name = "Hotel"


class AdventurePlace(Listing):
    class Meta(Listing.Meta):
        verbose_name = "Adventure Place"


class Attraction(Listing):
    class Meta(Listing.Meta):
        verbose_name = "Attraction"


LISTING_MODELS = {
    ItemType.TRIP: Trip,
    ItemType.EVENT: Trip,
    ItemType.HOTEL: Hotel,
    ItemType.ADVENTURE_PLACE: AdventurePlace,
    ItemType.ATTRACTION: Attraction,
}
