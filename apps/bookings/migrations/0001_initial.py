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
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("date", models.DateField(help_text="Start date of this occurrence.")),
                (
                    "duration",
                    models.PositiveSmallIntegerField(
                        default=1, help_text="Nights for daily listings, hour count for hourly listings."
                    ),
                ),
                (
                    "hours",
                    models.JSONField(
                        blank=True, help_text="Booked hours of the day (0-23), hourly listings only.", null=True
                    ),
                ),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "service_fee",
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
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("currency", models.CharField(default=apps.listings.models.default_currency, max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Reserved", "Reserved (draft, unpaid)"),
                            ("Pending", "Pending host confirmation"),
                            ("Confirmed", "Confirmed"),
                            ("Completed", "Completed"),
                            ("Cancelled", "Cancelled"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Paid - Escrow", "Paid, held in escrow"),
                            ("Released", "Released to host"),
                            ("Refunded", "Refunded"),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "escrow_release_date",
                    models.DateTimeField(
                        blank=True,
                        help_text="When escrowed funds become payable to the host. Fixed at creation.",
                        null=True,
                    ),
                ),
                (
                    "group_id",
                    models.UUIDField(
                        blank=True, db_index=True, help_text="Shared by all bookings of one recurring series.", null=True
                    ),
                ),
                ("guest_count", models.PositiveSmallIntegerField(default=1)),
                ("selected_add_ons", models.JSONField(blank=True, default=list)),
                (
                    "transaction_ids",
                    models.JSONField(
                        blank=True, default=list, help_text="Ledger transaction ids touching this booking, in order."
                    ),
                ),
                (
                    "caution_status",
                    models.CharField(
                        blank=True,
                        choices=[("Held", "Held"), ("Returned", "Returned")],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("refund_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[("guest", "Guest"), ("host", "Host"), ("system", "System"), ("admin", "Administrator")],
                        max_length=10,
                    ),
                ),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="listings.listing",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["listing", "date"], name="booking_listing_date_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                    models.Index(fields=["payment_status", "escrow_release_date"], name="booking_escrow_release_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(duration__gte=1), name="booking_duration_positive")
                ],
            },
        ),
    ]
