"""
Custom user manager for email-based authentication.

Wholesalers and retailers both sign in with their email address; the
manager handles creation with email as the primary identifier and
offers role-scoped querysets for the payment flow.

Related files:
    - models.py: User model that uses this manager
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Custom manager for User model with email-based authentication.

    Usage:
        wholesaler = User.objects.create_user(
            email='orders@acme-wholesale.co.uk',
            password='securepassword',
            role=UserRole.WHOLESALER,
            business_name='Acme Wholesale Ltd',
        )

        User.objects.wholesalers().filter(connected_account__isnull=True)
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a user with the given email and password.

        Raises:
            ValueError: If email is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a staff superuser.

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

    def wholesalers(self):
        """Users who sell through the platform and receive transfers."""
        from accounts.models import UserRole

        return self.get_queryset().filter(role=UserRole.WHOLESALER)
