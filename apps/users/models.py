"""User domain models.

The marketplace distinguishes guests (who book and pay), hosts (who list
spaces and receive payouts) and platform administrators (who run escrow
operations). Verification flags are committed state consulted by the
booking eligibility check; the wallet balance backs wallet payments.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.contrib.auth.models import AbstractUser, BaseUserManager  # type: ignore
from django.core.validators import RegexValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


PHONE_VALIDATOR = RegexValidator(
    regex=r"^\+?\d{7,15}$",
    message=_("Invalid phone number. Use the international format without spaces."),
)


class CustomUserManager(BaseUserManager):
    """User manager that uses the email address as the login."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str | None, **extra_fields: Any):
        if not email:
            raise ValueError("Email is required to create a user.")
        email = self.normalize_email(email)

        phone = extra_fields.get("phone")
        if phone:
            extra_fields["phone"] = self.normalize_phone(phone)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("role", CustomUser.RoleChoices.GUEST)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", CustomUser.RoleChoices.ADMIN)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)

    @staticmethod
    def normalize_phone(phone: str) -> str:
        return phone.replace(" ", "").replace("-", "")


class CustomUser(AbstractUser):
    """Marketplace user."""

    class RoleChoices(models.TextChoices):
        GUEST = "guest", _("Guest")
        HOST = "host", _("Host")
        ADMIN = "admin", _("Administrator")

    username = models.CharField(
        _("Display name"),
        max_length=150,
        blank=True,
    )
    email = models.EmailField(_("Email"), unique=True)
    phone = models.CharField(
        _("Phone"),
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        validators=[PHONE_VALIDATOR],
    )
    role = models.CharField(
        _("Role"),
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.GUEST,
    )
    is_email_verified = models.BooleanField(_("Email verified"), default=False)
    is_phone_verified = models.BooleanField(_("Phone verified"), default=False)
    is_identity_verified = models.BooleanField(_("KYC verified"), default=False)
    wallet_balance = models.DecimalField(
        _("Wallet balance"),
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        verbose_name = _("User")
        verbose_name_plural = _("Users")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(wallet_balance__gte=0),
                name="user_wallet_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_role_display()})"

    def is_host(self) -> bool:
        return self.role == self.RoleChoices.HOST

    def is_platform_admin(self) -> bool:
        return self.role == self.RoleChoices.ADMIN or self.is_staff or self.is_superuser

    @property
    def has_verified_contact(self) -> bool:
        return self.is_email_verified or self.is_phone_verified


User = CustomUser
