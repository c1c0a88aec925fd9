from django.contrib import admin

from .models import ComplaintSequence, Report, UserRole


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = (
        "complaint_id",
        "damage_type",
        "severity",
        "status",
        "ward",
        "assigned_to",
        "created_at",
    )
    list_filter = ("status", "severity", "damage_type", "ward", "created_at")
    search_fields = ("complaint_id", "reporter_name", "location", "landmark")
    # Lifecycle fields change only through reports.lifecycle.
    readonly_fields = (
        "complaint_id",
        "status",
        "assigned_to",
        "created_at",
        "updated_at",
        "resolved_at",
    )


@admin.register(ComplaintSequence)
class ComplaintSequenceAdmin(admin.ModelAdmin):
    list_display = ("year", "last_value")
    readonly_fields = ("year", "last_value")


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email")
