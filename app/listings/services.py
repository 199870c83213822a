"""
Listing lookups used by settlement.

Usage:
    from listings.services import resolve_listing, owned_item_ids

    listing = resolve_listing("trip", item_id)
    host = listing.created_by if listing else None

    ids = owned_item_ids(host)  # every listing id the host owns
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from listings.models import LISTING_MODELS, ItemType, Listing

if TYPE_CHECKING:
    from uuid import UUID

    from authentication.models import User

logger = logging.getLogger(__name__)


def resolve_listing(item_type: str, item_id: UUID | str) -> Listing | None:
    """
    Find the listing a booking refers to.

    Returns None for unknown types or missing rows; a booking for a
    listing that has since been removed still settles, it just has no
    host to pay.
    """
    try:
        model = LISTING_MODELS[ItemType.normalize(item_type)]
    except ValueError:
        logger.warning(
            "Unknown item type for listing lookup",
            extra={"item_type": item_type, "item_id": str(item_id)},
        )
        return None

    listing = model.objects.select_related("created_by").filter(pk=item_id).first()
    if listing is None:
        logger.warning(
            "Listing not found",
            extra={"item_type": item_type, "item_id": str(item_id)},
        )
    return listing


def resolve_host(item_type: str, item_id: UUID | str) -> User | None:
    """Return the host (created_by) of a listing, or None."""
    listing = resolve_listing(item_type, item_id)
    return listing.created_by if listing else None


def owned_item_ids(user: User) -> list[UUID]:
    """Return the ids of every listing the user owns, across categories."""
    ids: list[UUID] = []
    for model in {model for model in LISTING_MODELS.values()}:
        ids.extend(model.objects.filter(created_by=user).values_list("id", flat=True))
    return ids
