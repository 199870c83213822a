"""
Custom validators for Django models and DRF serializers.

This module provides the contact-field validators shared by the booking
payload and bank details:
- Phone numbers (international digits, optional leading +)
- Guest names (letters, spaces, apostrophes, hyphens)

Usage:
    from core.validators import validate_guest_phone, validate_guest_name

    class BookingPayloadSerializer(serializers.Serializer):
        guest_phone = serializers.CharField(validators=[validate_guest_phone])
        guest_name = serializers.CharField(validators=[validate_guest_name])
"""

from __future__ import annotations

import re

from django.core.exceptions import ValidationError

PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")

# Letters in any script, plus spaces, apostrophes and hyphens.
GUEST_NAME_PATTERN = re.compile(r"^[^\W\d_](?:[^\W\d_]|[\s'\-])*$")

GUEST_NAME_MIN_LENGTH = 2
GUEST_NAME_MAX_LENGTH = 100


def validate_guest_phone(value: str) -> None:
    """
    Validate a payer or guest phone number.

    Accepts 10 to 15 digits with an optional leading +. Spaces and
    dashes are not stripped here; normalize before validating.

    Raises:
        ValidationError: If the value is not a valid phone number
    """
    if not PHONE_PATTERN.match(value or ""):
        raise ValidationError(
            "Enter a valid phone number (10-15 digits, optional leading +).",
            code="invalid_phone",
        )


def validate_guest_name(value: str) -> None:
    """
    Validate a guest's display name.

    Raises:
        ValidationError: If the name is too short, too long, or contains
            characters other than letters, spaces, apostrophes and hyphens
    """
    value = (value or "").strip()
    if len(value) < GUEST_NAME_MIN_LENGTH:
        raise ValidationError(
            f"Name must be at least {GUEST_NAME_MIN_LENGTH} characters.",
            code="name_too_short",
        )
    if len(value) > GUEST_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be at most {GUEST_NAME_MAX_LENGTH} characters.",
            code="name_too_long",
        )
    if not GUEST_NAME_PATTERN.match(value):
        raise ValidationError(
            "Name can only contain letters, spaces, apostrophes and hyphens.",
            code="invalid_name",
        )
