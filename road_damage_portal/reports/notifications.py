"""Best-effort email notifications for report assignments and status changes."""
import logging
import smtplib
from dataclasses import dataclass, field
from functools import partial
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from .exceptions import NotificationError

logger = logging.getLogger(__name__)

ASSIGNMENT = "assignment"
STATUS_CHANGE = "status_change"

STATUS_MESSAGES = {
    "pending": "is pending review",
    "in-progress": "is now being addressed by our team",
    "resolved": "has been resolved",
}


@dataclass(frozen=True)
class NotificationRequest:
    kind: str
    recipient_address: str
    report_summary: dict = field(default_factory=dict)


def report_summary(report) -> dict:
    return {
        "complaint_id": report.complaint_id,
        "location": report.location,
        "ward": report.get_ward_display(),
        "damage_type": report.get_damage_type_display(),
        "severity": report.get_severity_display(),
        "status": report.status,
    }


def build_assignment_notification(report, worker) -> Optional[NotificationRequest]:
    if not worker.email:
        return None
    summary = report_summary(report)
    summary["worker_name"] = worker.get_full_name() or worker.get_username()
    return NotificationRequest(ASSIGNMENT, worker.email, summary)


def build_status_notification(report) -> Optional[NotificationRequest]:
    if not report.reporter_email:
        return None
    summary = report_summary(report)
    summary["reporter_name"] = report.reporter_name
    return NotificationRequest(STATUS_CHANGE, report.reporter_email, summary)


def _assignment_message(summary):
    subject = f"New Report Assigned: {summary['complaint_id']}"
    message = (
        f"Hello {summary.get('worker_name') or 'Worker'},\n\n"
        "A new road damage report has been assigned to you:\n"
        f"Complaint ID: {summary['complaint_id']}\n"
        f"Location: {summary['location']} ({summary['ward']})\n"
        f"Damage Type: {summary['damage_type']}\n"
        f"Severity: {summary['severity']}\n\n"
        "Please log in to your worker dashboard to view and address this report."
    )
    return subject, message


def _status_message(summary):
    status = summary["status"]
    subject = f"Report {summary['complaint_id']} Status Update"
    change = STATUS_MESSAGES.get(status, f"status changed to {status}")
    if status == "resolved":
        closing = "Thank you for helping keep our roads safe! The repair work has been completed."
    else:
        closing = "We will continue to keep you updated on the progress of your report."
    message = (
        f"Dear {summary.get('reporter_name') or 'Citizen'},\n\n"
        f"Your road damage report {summary['complaint_id']} {change}.\n\n"
        f"{closing}\n"
        "You can track your report at any time using your complaint ID."
    )
    return subject, message


def send_notification(request: NotificationRequest):
    """Send one notification email, raising NotificationError on transport failure.

    Sending is a no-op when notifications are disabled or the request has no
    recipient.
    """
    if not getattr(settings, "REPORT_NOTIFICATIONS_ENABLED", True):
        logger.debug("Notifications disabled; skipping %s for %s", request.kind, request.report_summary.get("complaint_id"))
        return
    if not request.recipient_address:
        return

    if request.kind == ASSIGNMENT:
        subject, message = _assignment_message(request.report_summary)
    elif request.kind == STATUS_CHANGE:
        subject, message = _status_message(request.report_summary)
    else:
        raise NotificationError(f"Unknown notification kind: {request.kind}")

    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[request.recipient_address],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError, ValueError) as exc:
        raise NotificationError(f"Could not deliver {request.kind} notification: {exc}") from exc
    logger.info("%s notification sent to %s", request.kind, request.recipient_address)


def dispatch_notification(request: NotificationRequest):
    try:
        send_notification(request)
    except NotificationError as exc:
        logger.warning(
            "Notification for %s dropped: %s",
            request.report_summary.get("complaint_id"),
            exc,
        )


def schedule_notification(request: Optional[NotificationRequest]):
    """Dispatch ``request`` once the surrounding transaction commits."""
    if request is None:
        return
    transaction.on_commit(partial(dispatch_notification, request), robust=True)
