"""
Custom user manager for email-based authentication.

Related files:
    - models.py: User model that uses this manager

Security:
    - Passwords are automatically hashed via set_password()
    - Email addresses are normalized (lowercase domain)
"""

import secrets

from django.contrib.auth.models import BaseUserManager
from django.utils.text import slugify


class UserManager(BaseUserManager):
    """
    Custom manager for User model with email-based authentication.

    Every user gets a referral_code at creation time; referral links carry
    it (``?ref=<code>``) and click tracking resolves the referrer from it.

    Usage:
        user = User.objects.create_user(
            email='guest@example.com',
            password='securepassword',
            full_name='Wanjiku Kamau',
        )

        admin = User.objects.create_superuser(
            email='admin@example.com',
            password='adminpassword'
        )
    """

    def generate_referral_code(self, email):
        """
        Build a unique referral code from the email local part.

        Falls back to a random suffix when the plain slug is already taken.
        """
        base = slugify(email.split("@")[0])[:24] or "user"
        code = base
        while self.filter(referral_code=code).exists():
            code = f"{base}-{secrets.token_hex(2)}"
        return code

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user with the given email and password.

        Args:
            email: User's email address (required)
            password: User's password (optional, unusable when omitted)
            **extra_fields: Additional fields to set on the user

        Raises:
            ValueError: If email is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        if not extra_fields.get("referral_code"):
            extra_fields["referral_code"] = self.generate_referral_code(email)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)
