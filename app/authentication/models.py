"""
Authentication models.

- User: Custom user model with email-based authentication

Every party in the settlement flow is a User: the guest who pays, the host
who owns a listing and receives payouts, the referrer who earns commission
and the admin who edits fee rates. Guest checkouts without an account are
recorded on the booking itself, not here.

Related files:
    - managers.py: Custom user manager (email login, referral codes)
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name used on bookings and transfer recipients
        phone_number: Default M-Pesa number for STK pushes
        referral_code: Unique code carried by referral links
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's full name",
    )

    phone_number = models.CharField(
        max_length=20,
        blank=True,
        help_text="Phone number in international format",
    )

    referral_code = models.SlugField(
        max_length=40,
        unique=True,
        help_text="Code used in referral links",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        if self.full_name:
            return self.full_name.split()[0]
        return self.email.split("@")[0]
