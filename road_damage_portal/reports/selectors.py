from datetime import datetime

from django.db.models import Count, Q

from .models import Report

RECENT_REPORTS_LIMIT = 5


def filter_reports(queryset, params):
    query = params.get("q", "").strip()
    status = params.get("status", "").strip()
    ward = params.get("ward", "").strip()
    severity = params.get("severity", "").strip()
    damage_type = params.get("damage_type", "").strip()
    start_date = params.get("start_date", "").strip()
    end_date = params.get("end_date", "").strip()

    if query:
        queryset = queryset.filter(
            Q(complaint_id__icontains=query)
            | Q(location__icontains=query)
            | Q(landmark__icontains=query)
            | Q(reporter_name__icontains=query)
            | Q(description__icontains=query)
        )
    if status and status != "all":
        queryset = queryset.filter(status=status)
    if ward and ward != "all":
        queryset = queryset.filter(ward=ward)
    if severity:
        queryset = queryset.filter(severity=severity)
    if damage_type:
        queryset = queryset.filter(damage_type=damage_type)

    if start_date:
        try:
            start_dt = datetime.strptime(start_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__gte=start_dt)
        except ValueError:
            pass
    if end_date:
        try:
            end_dt = datetime.strptime(end_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__lte=end_dt)
        except ValueError:
            pass
    return queryset


def report_stats(queryset=None) -> dict:
    if queryset is None:
        queryset = Report.objects.all()
    return queryset.aggregate(
        total=Count("pk"),
        pending=Count("pk", filter=Q(status=Report.Status.PENDING)),
        in_progress=Count("pk", filter=Q(status=Report.Status.IN_PROGRESS)),
        resolved=Count("pk", filter=Q(status=Report.Status.RESOLVED)),
    )


def recent_reports(limit=RECENT_REPORTS_LIMIT):
    return Report.objects.order_by("-created_at")[:limit]


def reports_assigned_to(user):
    return Report.objects.filter(assigned_to=user).order_by("-created_at")
