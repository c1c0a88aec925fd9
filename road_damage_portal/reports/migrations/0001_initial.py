# Generated manually for initial project scaffold.

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ComplaintSequence",
            fields=[
                ("year", models.PositiveIntegerField(primary_key=True, serialize=False)),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
            options={"ordering": ["-year"]},
        ),
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("complaint_id", models.CharField(editable=False, max_length=32, unique=True)),
                ("reporter_name", models.CharField(max_length=120)),
                ("reporter_phone", models.CharField(max_length=10)),
                ("reporter_email", models.EmailField(blank=True, max_length=254)),
                (
                    "damage_type",
                    models.CharField(
                        choices=[
                            ("pothole", "Pothole"),
                            ("crack", "Surface Crack"),
                            ("cave-in", "Road Cave-in"),
                            ("erosion", "Edge Erosion"),
                            ("waterlogging", "Waterlogging"),
                            ("other", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("moderate", "Moderate"),
                            ("critical", "Critical"),
                        ],
                        max_length=20,
                    ),
                ),
                ("location", models.CharField(max_length=255)),
                ("landmark", models.CharField(blank=True, max_length=255)),
                (
                    "ward",
                    models.CharField(
                        choices=[(f"ward-{number}", f"Ward {number}") for number in range(1, 21)],
                        max_length=10,
                    ),
                ),
                ("description", models.TextField(blank=True)),
                ("image_url", models.URLField(blank=True, max_length=500)),
                ("before_image_url", models.URLField(blank=True, max_length=500)),
                ("after_image_url", models.URLField(blank=True, max_length=500)),
                ("gps_lat", models.FloatField(blank=True, null=True)),
                ("gps_lng", models.FloatField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in-progress", "In Progress"),
                            ("resolved", "Resolved"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_reports",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "ward"], name="report_status_ward_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(status="resolved", resolved_at__isnull=False)
                            | (~models.Q(status="resolved") & models.Q(resolved_at__isnull=True))
                        ),
                        name="report_resolved_at_matches_status",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(assigned_to__isnull=True) | ~models.Q(status="pending"),
                        name="report_assigned_not_pending",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("worker", "Worker")],
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="portal_role",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["user__username"]},
        ),
    ]
