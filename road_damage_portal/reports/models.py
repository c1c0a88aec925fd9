import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

WARD_CHOICES = [(f"ward-{number}", f"Ward {number}") for number in range(1, 21)]


class Report(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in-progress", "In Progress"
        RESOLVED = "resolved", "Resolved"

    class Severity(models.TextChoices):
        LOW = "low", "Low"
        MODERATE = "moderate", "Moderate"
        CRITICAL = "critical", "Critical"

    class DamageType(models.TextChoices):
        POTHOLE = "pothole", "Pothole"
        CRACK = "crack", "Surface Crack"
        CAVE_IN = "cave-in", "Road Cave-in"
        EROSION = "erosion", "Edge Erosion"
        WATERLOGGING = "waterlogging", "Waterlogging"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    complaint_id = models.CharField(max_length=32, unique=True, editable=False)

    reporter_name = models.CharField(max_length=120)
    reporter_phone = models.CharField(max_length=10)
    reporter_email = models.EmailField(blank=True)

    damage_type = models.CharField(max_length=20, choices=DamageType.choices)
    severity = models.CharField(max_length=20, choices=Severity.choices)
    location = models.CharField(max_length=255)
    landmark = models.CharField(max_length=255, blank=True)
    ward = models.CharField(max_length=10, choices=WARD_CHOICES)
    description = models.TextField(blank=True)

    image_url = models.URLField(max_length=500, blank=True)
    before_image_url = models.URLField(max_length=500, blank=True)
    after_image_url = models.URLField(max_length=500, blank=True)
    gps_lat = models.FloatField(null=True, blank=True)
    gps_lng = models.FloatField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="assigned_reports",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status="resolved", resolved_at__isnull=False)
                    | (~Q(status="resolved") & Q(resolved_at__isnull=True))
                ),
                name="report_resolved_at_matches_status",
            ),
            models.CheckConstraint(
                condition=Q(assigned_to__isnull=True) | ~Q(status="pending"),
                name="report_assigned_not_pending",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "ward"], name="report_status_ward_idx"),
        ]

    def __str__(self):
        return self.complaint_id or f"Report {self.pk}"

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to_id is not None


class ComplaintSequence(models.Model):
    """Last complaint sequence number handed out for a calendar year."""

    year = models.PositiveIntegerField(primary_key=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-year"]

    def __str__(self):
        return f"{self.year}: {self.last_value}"


class UserRole(models.Model):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        WORKER = "worker", "Worker"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="portal_role",
    )
    role = models.CharField(max_length=20, choices=Role.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["user__username"]

    def __str__(self):
        return f"{self.user.get_username()} ({self.get_role_display()})"
