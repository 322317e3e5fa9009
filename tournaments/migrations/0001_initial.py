"""
Initial migration for the tournaments app.

Creates the Tournament and Group tables.  Capacity counters are derived
from registrant rows and are not stored here.
"""
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Tournament",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("year", models.PositiveIntegerField()),
                ("slug", models.SlugField(blank=True, max_length=255, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("open", "Open"),
                            ("closed", "Closed"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("archived", "Archived"),
                        ],
                        default="draft",
                        max_length=16,
                    ),
                ),
                ("event_date", models.DateField(blank=True, null=True)),
                ("registration_open", models.BooleanField(default=False)),
                ("registration_deadline", models.DateTimeField(blank=True, null=True)),
                (
                    "max_capacity",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Total number of confirmed golfers; empty means unlimited",
                        null=True,
                    ),
                ),
                (
                    "reserved_slots",
                    models.PositiveIntegerField(default=0, help_text="Slots held back from public registration for admins"),
                ),
                ("entry_fee", models.PositiveIntegerField(default=12500, help_text="Entry fee in cents")),
                (
                    "early_bird_fee",
                    models.PositiveIntegerField(blank=True, help_text="Early bird fee in cents", null=True),
                ),
                ("early_bird_deadline", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["-year", "-created_at"]},
        ),
        migrations.CreateModel(
            name="Group",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("group_number", models.PositiveIntegerField()),
                ("hole_number", models.PositiveIntegerField(blank=True, null=True)),
                ("max_golfers", models.PositiveSmallIntegerField(default=4)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "tournament",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="groups",
                        to="tournaments.tournament",
                    ),
                ),
            ],
            options={"ordering": ["tournament", "group_number"]},
        ),
        migrations.AddConstraint(
            model_name="group",
            constraint=models.UniqueConstraint(
                fields=("tournament", "group_number"), name="uniq_group_number_per_tournament"
            ),
        ),
    ]
