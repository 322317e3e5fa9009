"""
Initial migration for the registrants app.

Creates the Registrant table together with the per-tournament
case-insensitive email uniqueness and the payment/admission check
constraints.
"""
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.db.models.functions.text


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tournaments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Registrant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(max_length=40)),
                ("mobile", models.CharField(blank=True, max_length=40)),
                ("company", models.CharField(blank=True, max_length=255)),
                ("address", models.CharField(blank=True, max_length=500)),
                ("waiver_accepted_at", models.DateTimeField()),
                (
                    "admission_status",
                    models.CharField(
                        choices=[("confirmed", "Confirmed"), ("waitlisted", "Waitlisted"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="confirmed",
                        max_length=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("unpaid", "Unpaid"), ("paid", "Paid"), ("refunded", "Refunded")],
                        db_index=True,
                        default="unpaid",
                        max_length=10,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[("gateway", "Card (online)"), ("manual", "Cash/check on the day")],
                        default="gateway",
                        max_length=10,
                    ),
                ),
                ("checkout_session_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("refund_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("payment_token", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                (
                    "payment_amount",
                    models.PositiveIntegerField(blank=True, help_text="Captured amount in cents", null=True),
                ),
                ("payment_method_brand", models.CharField(blank=True, max_length=32)),
                ("payment_method_last4", models.CharField(blank=True, max_length=4)),
                ("payment_notes", models.TextField(blank=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "refund_amount",
                    models.PositiveIntegerField(blank=True, help_text="Refunded amount in cents", null=True),
                ),
                ("refund_reason", models.TextField(blank=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("position", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "group",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="registrants",
                        to="tournaments.group",
                    ),
                ),
                (
                    "refunded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="refunded_registrants",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tournament",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrants",
                        to="tournaments.tournament",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["tournament", "admission_status"], name="registrant_admission_idx"),
                    models.Index(fields=["tournament", "payment_status"], name="registrant_payment_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="registrant",
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower("email"),
                models.F("tournament"),
                name="uniq_registrant_email_per_tournament",
            ),
        ),
        migrations.AddConstraint(
            model_name="registrant",
            constraint=models.CheckConstraint(
                condition=models.Q(("payment_status", "paid"), _negated=True)
                | models.Q(("payment_intent_id__isnull", False)),
                name="paid_requires_payment_intent",
            ),
        ),
        migrations.AddConstraint(
            model_name="registrant",
            constraint=models.CheckConstraint(
                condition=models.Q(("payment_status", "refunded"), _negated=True)
                | models.Q(("refund_id__isnull", False)),
                name="refunded_requires_refund_id",
            ),
        ),
        migrations.AddConstraint(
            model_name="registrant",
            constraint=models.CheckConstraint(
                condition=models.Q(("admission_status", "cancelled"), _negated=True)
                | models.Q(("group__isnull", True)),
                name="cancelled_holds_no_group",
            ),
        ),
    ]
