"""
Account models.

This module defines the platform user:
- User: Email-based login for wholesalers, retailers and staff

A wholesaler's Stripe Express account is stored on
payments.ConnectedAccount (one-to-one, reachable as
``user.connected_account``).

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/models/connected_account.py: Stripe Connect state
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from accounts.managers import UserManager


class UserRole(models.TextChoices):
    """Which side of an order a user is on."""

    WHOLESALER = "wholesaler", "Wholesaler"
    RETAILER = "retailer", "Retailer"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: wholesaler or retailer
        business_name: Trading name shown on Stripe onboarding
        phone: Contact number for order notifications
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
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.RETAILER,
        db_index=True,
        help_text="Whether this user sells (wholesaler) or buys (retailer)",
    )
    business_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Trading name, sent to Stripe as the business profile name",
    )
    phone = models.CharField(
        max_length=32,
        blank=True,
        help_text="Contact phone number",
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
        return self.business_name or self.email

    def get_full_name(self):
        return self.business_name or self.email

    def get_short_name(self):
        return self.email.split("@")[0]

    @property
    def is_wholesaler(self) -> bool:
        return self.role == UserRole.WHOLESALER

    @property
    def stripe_account_id(self) -> str | None:
        """Stripe Express account id, if the wholesaler has onboarded."""
        connected_account = getattr(self, "connected_account", None)
        return connected_account.stripe_account_id if connected_account else None
