"""Report lifecycle: complaint-ID allocation, assignment and status transitions.

Every mutating function runs in its own atomic block and locks the report row
for the read-modify-write. Notifications are queued with
``transaction.on_commit`` so they only fire once the change is durable.
"""
import logging
import uuid

from django.conf import settings
from django.core.validators import URLValidator
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import NotFoundError, PersistenceError, ValidationError
from .forms import ReportSubmissionForm
from .models import ComplaintSequence, Report
from .notifications import (
    build_assignment_notification,
    build_status_notification,
    schedule_notification,
)
from .roles import get_worker

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 3
REPAIR_IMAGE_FIELDS = {
    "before": "before_image_url",
    "after": "after_image_url",
}


def format_complaint_id(year: int, sequence: int) -> str:
    prefix = getattr(settings, "COMPLAINT_ID_PREFIX", "SMC")
    return f"{prefix}-{year}-{sequence:06d}"


def allocate_complaint_id(year: int) -> str:
    """Reserve the next sequence number for ``year`` and format it.

    The counter row is incremented in place, so concurrent callers serialize
    on its row lock and never read the same value.
    """
    with transaction.atomic():
        bumped = ComplaintSequence.objects.filter(year=year).update(last_value=F("last_value") + 1)
        if not bumped:
            try:
                with transaction.atomic():
                    ComplaintSequence.objects.create(year=year, last_value=1)
            except IntegrityError:
                # Another request created this year's counter first.
                ComplaintSequence.objects.filter(year=year).update(last_value=F("last_value") + 1)
        sequence = ComplaintSequence.objects.get(year=year).last_value
    return format_complaint_id(year, sequence)


def create_report(data) -> Report:
    form = ReportSubmissionForm(data)
    if not form.is_valid():
        raise ValidationError(form.errors.as_data())

    now = timezone.now()
    report = form.save(commit=False)
    report.status = Report.Status.PENDING
    report.assigned_to = None
    report.resolved_at = None
    report.created_at = now
    report.updated_at = now

    for _ in range(MAX_ID_ATTEMPTS):
        try:
            report.complaint_id = allocate_complaint_id(now.year)
            with transaction.atomic():
                report.save(force_insert=True)
        except IntegrityError as exc:
            if not Report.objects.filter(complaint_id=report.complaint_id).exists():
                raise PersistenceError(f"Could not store report: {exc}") from exc
            logger.warning("Complaint ID %s already taken, allocating another", report.complaint_id)
            continue
        except DatabaseError as exc:
            raise PersistenceError(f"Could not store report: {exc}") from exc

        logger.info("Report %s submitted for %s", report.complaint_id, report.ward)
        return report

    raise PersistenceError(f"Could not allocate a unique complaint ID after {MAX_ID_ATTEMPTS} attempts")


def _lock_report(report_id) -> Report:
    try:
        pk = report_id if isinstance(report_id, uuid.UUID) else uuid.UUID(str(report_id))
        return Report.objects.select_for_update().get(pk=pk)
    except (ValueError, Report.DoesNotExist):
        raise NotFoundError(f"Report {report_id} does not exist.") from None


def _touch(report, now=None):
    now = now or timezone.now()
    # updated_at never goes behind created_at, even with a skewed clock.
    report.updated_at = max(now, report.created_at)
    return now


def assign_worker(report_id, worker_id) -> Report:
    """Assign a worker to a report, or release it when ``worker_id`` is None.

    Assigning a pending report moves it to in-progress. Releasing always
    returns the report to pending.
    """
    worker = get_worker(worker_id) if worker_id is not None else None
    try:
        with transaction.atomic():
            report = _lock_report(report_id)
            report.assigned_to = worker
            if worker is None:
                report.status = Report.Status.PENDING
                report.resolved_at = None
            elif report.status == Report.Status.PENDING:
                report.status = Report.Status.IN_PROGRESS
            _touch(report)
            report.save(update_fields=["assigned_to", "status", "resolved_at", "updated_at"])

            if worker is not None:
                schedule_notification(build_assignment_notification(report, worker))
    except DatabaseError as exc:
        raise PersistenceError(f"Could not update report {report_id}: {exc}") from exc

    if worker is None:
        logger.info("Report %s unassigned", report.complaint_id)
    else:
        logger.info("Report %s assigned to %s", report.complaint_id, worker.get_username())
    return report


def set_status(report_id, new_status) -> Report:
    if new_status not in Report.Status.values:
        raise ValidationError({"status": [f"'{new_status}' is not a valid status."]})

    try:
        with transaction.atomic():
            report = _lock_report(report_id)
            previous_status = report.status
            now = _touch(report)

            if new_status == Report.Status.RESOLVED:
                if previous_status != Report.Status.RESOLVED or report.resolved_at is None:
                    report.resolved_at = report.updated_at
            else:
                report.resolved_at = None
            if new_status == Report.Status.PENDING:
                # A pending report cannot stay assigned.
                report.assigned_to = None
            report.status = new_status
            report.save(update_fields=["status", "resolved_at", "assigned_to", "updated_at"])

            schedule_notification(build_status_notification(report))
    except DatabaseError as exc:
        raise PersistenceError(f"Could not update report {report_id}: {exc}") from exc

    logger.info(
        "Report %s status %s -> %s at %s",
        report.complaint_id,
        previous_status,
        new_status,
        now.isoformat(),
    )
    return report


def attach_repair_image(report_id, kind, url) -> Report:
    """Set or clear (``url`` empty) the before/after repair photo of a report."""
    field_name = REPAIR_IMAGE_FIELDS.get(kind)
    if field_name is None:
        raise ValidationError({"kind": ["Image kind must be 'before' or 'after'."]})
    url = (url or "").strip()
    if url:
        try:
            URLValidator()(url)
        except ValidationError:
            raise ValidationError({"url": ["Enter a valid URL."]}) from None

    try:
        with transaction.atomic():
            report = _lock_report(report_id)
            setattr(report, field_name, url)
            _touch(report)
            report.save(update_fields=[field_name, "updated_at"])
    except DatabaseError as exc:
        raise PersistenceError(f"Could not update report {report_id}: {exc}") from exc

    logger.info("Report %s %s image %s", report.complaint_id, kind, "updated" if url else "removed")
    return report


def get_report(complaint_id) -> Report:
    try:
        return Report.objects.select_related("assigned_to").get(complaint_id=complaint_id.strip().upper())
    except Report.DoesNotExist:
        raise NotFoundError(f"Complaint {complaint_id} does not exist.") from None
    except DatabaseError as exc:
        raise PersistenceError(f"Could not read complaint {complaint_id}: {exc}") from exc
