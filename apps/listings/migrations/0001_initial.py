import apps.listings.models
import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("Draft", "Draft"), ("Live", "Live"), ("Deleted", "Deleted")],
                        default="Draft",
                        max_length=20,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Price per hour or per day, depending on price_unit.",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "price_unit",
                    models.CharField(
                        choices=[("Hourly", "Hourly"), ("Daily", "Daily")], default="Daily", max_length=10
                    ),
                ),
                ("currency", models.CharField(default=apps.listings.models.default_currency, max_length=3)),
                (
                    "availability",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Mapping of ISO date to the list of open hours (0-23). Missing dates are closed.",
                        null=True,
                    ),
                ),
                ("capacity", models.PositiveSmallIntegerField(default=1)),
                ("included_guests", models.PositiveSmallIntegerField(default=1)),
                (
                    "price_per_extra_guest",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "caution_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Refundable security deposit, charged once per booking or series.",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "cancellation_policy",
                    models.CharField(
                        choices=[
                            ("Flexible", "Flexible (full refund 24h before)"),
                            ("Moderate", "Moderate (full refund 7 days before)"),
                            ("Strict", "Strict (50% refund 14 days before)"),
                            ("Non-refundable", "Non-refundable"),
                        ],
                        default="Flexible",
                        max_length=20,
                    ),
                ),
                ("allow_recurring", models.BooleanField(default=False)),
                ("requires_identity_verification", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "host",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Listing",
                "verbose_name_plural": "Listings",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["host", "status"], name="listing_host_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="ListingAddOn",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=120)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="add_ons",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Add-on",
                "verbose_name_plural": "Add-ons",
                "ordering": ["name"],
            },
        ),
    ]
