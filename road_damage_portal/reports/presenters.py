"""JSON projections of reports.

The public projection is what an unauthenticated tracker sees: no phone,
no email and no worker identity.
"""
from .roles import display_name
from .timeline import derive_timeline


def _iso(value):
    return value.isoformat() if value else None


def public_report_data(report, include_timeline=False):
    data = {
        "complaint_id": report.complaint_id,
        "damage_type": report.damage_type,
        "damage_type_display": report.get_damage_type_display(),
        "severity": report.severity,
        "status": report.status,
        "status_display": report.get_status_display(),
        "location": report.location,
        "landmark": report.landmark,
        "ward": report.ward,
        "ward_display": report.get_ward_display(),
        "reported_by": report.reporter_name.split(" ")[0] if report.reporter_name else "",
        "is_assigned": report.is_assigned,
        "image_url": report.image_url or None,
        "before_image_url": report.before_image_url or None,
        "after_image_url": report.after_image_url or None,
        "created_at": _iso(report.created_at),
        "resolved_at": _iso(report.resolved_at),
    }
    if include_timeline:
        data["timeline"] = [step.as_dict() for step in derive_timeline(report)]
    return data


def staff_report_data(report):
    data = public_report_data(report)
    data.update(
        {
            "id": str(report.pk),
            "reporter_name": report.reporter_name,
            "reporter_phone": report.reporter_phone,
            "reporter_email": report.reporter_email,
            "description": report.description,
            "gps_lat": report.gps_lat,
            "gps_lng": report.gps_lng,
            "assigned_to": report.assigned_to_id,
            "assigned_to_name": display_name(report.assigned_to) if report.assigned_to_id else None,
            "updated_at": _iso(report.updated_at),
        }
    )
    return data


def worker_data(user):
    return {
        "id": user.pk,
        "username": user.get_username(),
        "email": user.email,
        "full_name": display_name(user),
    }
