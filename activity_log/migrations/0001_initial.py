"""
Initial migration for the activity_log app.

Defines the ``ActivityLog`` model and its indexes.
"""
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tournaments", "0001_initial"),
        ("registrants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("registration_created", "Registration created"),
                            ("payment_completed", "Payment completed"),
                            ("payment_recorded", "Payment recorded"),
                            ("registrant_refunded", "Registrant refunded"),
                            ("registrant_cancelled", "Registrant cancelled"),
                            ("registrant_promoted", "Registrant promoted"),
                        ],
                        db_index=True,
                        max_length=64,
                    ),
                ),
                ("details", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "registrant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to="registrants.registrant",
                    ),
                ),
                (
                    "tournament",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activity_logs",
                        to="tournaments.tournament",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["tournament", "created_at"], name="activity_log_tournament_idx"),
                    models.Index(fields=["registrant", "created_at"], name="activity_log_registrant_idx"),
                ],
            },
        ),
    ]
