import re
import smtplib
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.core.management import call_command
from django.db import DatabaseError, connection
from django.db.models.query import QuerySet
from django.test import Client, TestCase, TransactionTestCase, override_settings
from django.urls import reverse

from . import lifecycle
from .exceptions import NotFoundError, PersistenceError, ValidationError
from .models import ComplaintSequence, Report, UserRole
from .presenters import public_report_data
from .roles import Role, can_update_report, create_worker, role_for
from .selectors import filter_reports, report_stats
from .timeline import derive_timeline

User = get_user_model()

COMPLAINT_ID_PATTERN = re.compile(r"^SMC-\d{4}-\d{6}$")


def at(year, month=1, day=1, hour=10, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=dt_timezone.utc)


def frozen_now(moment):
    return mock.patch("django.utils.timezone.now", return_value=moment)


def report_data(**overrides):
    data = {
        "reporter_name": "Rajesh Kumar",
        "reporter_phone": "9876543210",
        "reporter_email": "rajesh@example.com",
        "damage_type": Report.DamageType.POTHOLE,
        "severity": Report.Severity.CRITICAL,
        "location": "MG Road, Near City Mall",
        "landmark": "City Mall",
        "ward": "ward-12",
        "description": "Deep pothole in the left lane.",
        "image_url": "https://storage.example.com/report-images/pothole.jpg",
        "gps_lat": "12.9716",
        "gps_lng": "77.5946",
    }
    data.update(overrides)
    return data


class PortalTestMixin:
    def make_worker(self, username="worker42", email="worker42@example.com"):
        return create_worker(username, email, "StrongPass123!", "Team Alpha")

    def make_admin(self, username="wardadmin"):
        user = User.objects.create_user(username=username, email=f"{username}@example.com", password="StrongPass123!")
        UserRole.objects.create(user=user, role=UserRole.Role.ADMIN)
        return user

    def create_report(self, **overrides):
        return lifecycle.create_report(report_data(**overrides))

    def assert_resolved_at_coupled(self, report):
        report.refresh_from_db()
        self.assertEqual(report.resolved_at is not None, report.status == Report.Status.RESOLVED)


class ComplaintIdAllocationTests(PortalTestMixin, TestCase):
    def test_first_report_of_year_gets_sequence_one(self):
        with frozen_now(at(2026, 3, 14)):
            report = self.create_report()
        self.assertEqual(report.complaint_id, "SMC-2026-000001")
        self.assertEqual(report.status, Report.Status.PENDING)
        self.assertIsNone(report.resolved_at)
        self.assertIsNone(report.assigned_to)

    def test_sequence_increases_within_year_and_restarts_next_year(self):
        with frozen_now(at(2026, 12, 31)):
            first = self.create_report()
            second = self.create_report()
        with frozen_now(at(2027, 1, 1)):
            third = self.create_report()

        self.assertEqual(first.complaint_id, "SMC-2026-000001")
        self.assertEqual(second.complaint_id, "SMC-2026-000002")
        self.assertEqual(third.complaint_id, "SMC-2027-000001")
        self.assertEqual(ComplaintSequence.objects.get(year=2026).last_value, 2)

    def test_generated_ids_match_format(self):
        ids = {self.create_report().complaint_id for _ in range(5)}
        self.assertEqual(len(ids), 5)
        for complaint_id in ids:
            self.assertRegex(complaint_id, COMPLAINT_ID_PATTERN)

    @override_settings(COMPLAINT_ID_PREFIX="RDP")
    def test_prefix_comes_from_settings(self):
        self.assertEqual(lifecycle.format_complaint_id(2026, 42), "RDP-2026-000042")

    def test_taken_id_is_retried_with_a_fresh_allocation(self):
        with frozen_now(at(2026, 5, 1)):
            existing = self.create_report()
            with mock.patch(
                "reports.lifecycle.allocate_complaint_id",
                side_effect=[existing.complaint_id, "SMC-2026-000077"],
            ):
                report = self.create_report(reporter_name="Anita Desai")

        self.assertEqual(report.complaint_id, "SMC-2026-000077")
        self.assertEqual(Report.objects.count(), 2)

    def test_gives_up_when_every_allocation_collides(self):
        existing = self.create_report()
        with mock.patch("reports.lifecycle.allocate_complaint_id", return_value=existing.complaint_id):
            with self.assertRaises(PersistenceError):
                self.create_report(reporter_name="Anita Desai")
        self.assertEqual(Report.objects.count(), 1)

    def test_counter_created_by_another_request_is_incremented(self):
        # The other request inserts this year's counter between our UPDATE and INSERT.
        ComplaintSequence.objects.create(year=2026, last_value=1)
        real_update = QuerySet.update
        calls = []

        def update_missing_the_new_row(queryset, **kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                return 0
            return real_update(queryset, **kwargs)

        with mock.patch.object(QuerySet, "update", autospec=True, side_effect=update_missing_the_new_row):
            complaint_id = lifecycle.allocate_complaint_id(2026)

        self.assertEqual(complaint_id, "SMC-2026-000002")
        self.assertEqual(len(calls), 2)
        self.assertEqual(ComplaintSequence.objects.get(year=2026).last_value, 2)

    def test_allocations_are_sequential_per_year(self):
        first = lifecycle.allocate_complaint_id(2026)
        second = lifecycle.allocate_complaint_id(2026)
        third = lifecycle.allocate_complaint_id(2027)
        self.assertEqual([first, second, third], ["SMC-2026-000001", "SMC-2026-000002", "SMC-2027-000001"])


class ConcurrentCreateTests(PortalTestMixin, TransactionTestCase):
    def setUp(self):
        if connection.vendor == "sqlite" and connection.is_in_memory_db():
            self.skipTest("Request threads cannot share an in-memory SQLite database.")

    def _create_in_thread(self, index):
        try:
            return lifecycle.create_report(report_data(reporter_name=f"Citizen {index}")).complaint_id
        finally:
            connection.close()

    def test_concurrent_creates_get_distinct_ids(self):
        with ThreadPoolExecutor(max_workers=8) as executor:
            complaint_ids = list(executor.map(self._create_in_thread, range(16)))

        self.assertEqual(len(set(complaint_ids)), 16)
        self.assertEqual(Report.objects.count(), 16)


class CreateReportTests(PortalTestMixin, TestCase):
    def test_timestamps_set_from_clock(self):
        moment = at(2026, 2, 1, 9, 30)
        with frozen_now(moment):
            report = self.create_report()
        report.refresh_from_db()
        self.assertEqual(report.created_at, moment)
        self.assertEqual(report.updated_at, moment)

    def test_system_fields_supplied_by_caller_are_ignored(self):
        worker = self.make_worker()
        report = self.create_report(
            complaint_id="SMC-1999-999999",
            status=Report.Status.RESOLVED,
            assigned_to=worker.pk,
            resolved_at="2026-01-01T00:00:00Z",
        )
        self.assertNotEqual(report.complaint_id, "SMC-1999-999999")
        self.assertEqual(report.status, Report.Status.PENDING)
        self.assertIsNone(report.assigned_to)
        self.assertIsNone(report.resolved_at)

    def test_phone_is_normalized(self):
        report = self.create_report(reporter_phone="98765-43210")
        self.assertEqual(report.reporter_phone, "9876543210")

    def test_invalid_phone_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_report(reporter_phone="12345")
        self.assertIn("reporter_phone", ctx.exception.message_dict)
        self.assertFalse(Report.objects.exists())

    def test_short_location_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_report(location="MG")
        self.assertIn("location", ctx.exception.message_dict)

    def test_missing_required_fields_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            lifecycle.create_report({"reporter_name": "Rajesh Kumar"})
        errors = ctx.exception.message_dict
        for field in ("reporter_phone", "damage_type", "severity", "location", "ward"):
            self.assertIn(field, errors)

    def test_half_gps_pair_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_report(gps_lng="")
        self.assertIn("__all__", ctx.exception.message_dict)

    def test_out_of_range_latitude_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_report(gps_lat="123.4")
        self.assertIn("gps_lat", ctx.exception.message_dict)

    def test_storage_failure_leaves_no_record(self):
        with mock.patch.object(Report, "save", side_effect=DatabaseError("disk full")):
            with self.assertRaises(PersistenceError):
                self.create_report()
        self.assertFalse(Report.objects.exists())


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class AssignWorkerTests(PortalTestMixin, TestCase):
    def setUp(self):
        self.worker = self.make_worker()
        self.report = self.create_report()

    def test_assigning_pending_report_moves_it_in_progress(self):
        with self.captureOnCommitCallbacks(execute=True):
            report = lifecycle.assign_worker(self.report.pk, self.worker.pk)

        report.refresh_from_db()
        self.assertEqual(report.status, Report.Status.IN_PROGRESS)
        self.assertEqual(report.assigned_to, self.worker)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["worker42@example.com"])
        self.assertIn(report.complaint_id, mail.outbox[0].subject)

    def test_assignment_refreshes_updated_at(self):
        later = self.report.created_at + timedelta(hours=3)
        with frozen_now(later):
            report = lifecycle.assign_worker(self.report.pk, self.worker.pk)
        self.assertEqual(report.updated_at, later)

    def test_assigning_resolved_report_keeps_status(self):
        lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        report = lifecycle.assign_worker(self.report.pk, self.worker.pk)
        self.assertEqual(report.status, Report.Status.RESOLVED)
        self.assert_resolved_at_coupled(report)

    def test_unassigning_reverts_to_pending(self):
        lifecycle.assign_worker(self.report.pk, self.worker.pk)
        with self.captureOnCommitCallbacks(execute=True):
            report = lifecycle.assign_worker(self.report.pk, None)

        report.refresh_from_db()
        self.assertEqual(report.status, Report.Status.PENDING)
        self.assertIsNone(report.assigned_to)
        self.assertEqual(mail.outbox, [])

    def test_unassigning_resolved_report_clears_resolved_at(self):
        lifecycle.assign_worker(self.report.pk, self.worker.pk)
        lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        report = lifecycle.assign_worker(self.report.pk, None)
        self.assertEqual(report.status, Report.Status.PENDING)
        self.assert_resolved_at_coupled(report)

    def test_unknown_report_raises_not_found_without_changes(self):
        before = Report.objects.values_list("status", "assigned_to", "updated_at").get()
        with self.assertRaises(NotFoundError):
            lifecycle.assign_worker("00000000-0000-0000-0000-000000000000", self.worker.pk)
        with self.assertRaises(NotFoundError):
            lifecycle.assign_worker("not-a-uuid", self.worker.pk)
        after = Report.objects.values_list("status", "assigned_to", "updated_at").get()
        self.assertEqual(before, after)

    def test_unknown_worker_raises_not_found(self):
        citizen = User.objects.create_user(username="citizen", password="StrongPass123!")
        for worker_id in (citizen.pk, 987654, "worker-42"):
            with self.assertRaises(NotFoundError):
                lifecycle.assign_worker(self.report.pk, worker_id)
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.Status.PENDING)

    def test_notification_failure_does_not_fail_assignment(self):
        with mock.patch("reports.notifications.send_mail", side_effect=smtplib.SMTPException("relay down")):
            with self.assertLogs("reports.notifications", level="WARNING") as logs:
                with self.captureOnCommitCallbacks(execute=True):
                    report = lifecycle.assign_worker(self.report.pk, self.worker.pk)

        report.refresh_from_db()
        self.assertEqual(report.status, Report.Status.IN_PROGRESS)
        self.assertIn("relay down", logs.output[0])

    @override_settings(REPORT_NOTIFICATIONS_ENABLED=False)
    def test_disabled_notifications_are_a_no_op(self):
        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.assign_worker(self.report.pk, self.worker.pk)
        self.assertEqual(mail.outbox, [])


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class SetStatusTests(PortalTestMixin, TestCase):
    def setUp(self):
        self.worker = self.make_worker()
        with frozen_now(at(2026, 4, 1)):
            self.report = self.create_report()

    def test_resolving_sets_resolved_at(self):
        moment = at(2026, 4, 3, 15)
        with frozen_now(moment):
            report = lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        report.refresh_from_db()
        self.assertEqual(report.status, Report.Status.RESOLVED)
        self.assertEqual(report.resolved_at, moment)

    def test_reopening_clears_resolved_at(self):
        lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        report = lifecycle.set_status(self.report.pk, Report.Status.PENDING)
        report.refresh_from_db()
        self.assertEqual(report.status, Report.Status.PENDING)
        self.assertIsNone(report.resolved_at)

    def test_repeating_a_status_is_idempotent(self):
        with frozen_now(at(2026, 4, 2)):
            first = lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        with frozen_now(at(2026, 4, 5)):
            second = lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)

        self.assertEqual(second.status, first.status)
        self.assertEqual(second.resolved_at, at(2026, 4, 2))
        self.assertEqual(second.updated_at, at(2026, 4, 5))

    def test_invalid_status_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            lifecycle.set_status(self.report.pk, "closed")
        self.assertIn("status", ctx.exception.message_dict)
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, Report.Status.PENDING)

    def test_unknown_report_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            lifecycle.set_status("00000000-0000-0000-0000-000000000000", Report.Status.RESOLVED)

    def test_status_change_emails_reporter(self):
        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.set_status(self.report.pk, Report.Status.RESOLVED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["rajesh@example.com"])
        self.assertIn("has been resolved", mail.outbox[0].body)

    def test_no_email_on_file_sends_nothing(self):
        report = self.create_report(reporter_email="")
        with self.captureOnCommitCallbacks(execute=True):
            lifecycle.set_status(report.pk, Report.Status.IN_PROGRESS)
        self.assertEqual(mail.outbox, [])

    def test_moving_assigned_report_to_pending_releases_worker(self):
        lifecycle.assign_worker(self.report.pk, self.worker.pk)
        report = lifecycle.set_status(self.report.pk, Report.Status.PENDING)
        report.refresh_from_db()
        self.assertIsNone(report.assigned_to)

    def test_resolved_at_invariant_holds_after_every_operation(self):
        operations = [
            lambda: lifecycle.assign_worker(self.report.pk, self.worker.pk),
            lambda: lifecycle.set_status(self.report.pk, Report.Status.RESOLVED),
            lambda: lifecycle.set_status(self.report.pk, Report.Status.IN_PROGRESS),
            lambda: lifecycle.set_status(self.report.pk, Report.Status.RESOLVED),
            lambda: lifecycle.assign_worker(self.report.pk, None),
            lambda: lifecycle.set_status(self.report.pk, Report.Status.RESOLVED),
            lambda: lifecycle.set_status(self.report.pk, Report.Status.PENDING),
        ]
        for operation in operations:
            report = operation()
            self.assert_resolved_at_coupled(report)
            self.assertGreaterEqual(report.updated_at, report.created_at)
            if report.assigned_to_id is not None:
                self.assertNotEqual(report.status, Report.Status.PENDING)


class RepairImageTests(PortalTestMixin, TestCase):
    def test_before_and_after_images_set_and_cleared(self):
        report = self.create_report()
        lifecycle.attach_repair_image(report.pk, "before", "https://storage.example.com/before.jpg")
        report = lifecycle.attach_repair_image(report.pk, "after", "https://storage.example.com/after.jpg")
        self.assertEqual(report.before_image_url, "https://storage.example.com/before.jpg")
        self.assertEqual(report.after_image_url, "https://storage.example.com/after.jpg")

        report = lifecycle.attach_repair_image(report.pk, "before", "")
        report.refresh_from_db()
        self.assertEqual(report.before_image_url, "")

    def test_bad_kind_or_url_rejected(self):
        report = self.create_report()
        with self.assertRaises(ValidationError):
            lifecycle.attach_repair_image(report.pk, "during", "https://storage.example.com/x.jpg")
        with self.assertRaises(ValidationError):
            lifecycle.attach_repair_image(report.pk, "after", "not a url")


class TimelineTests(TestCase):
    created = at(2026, 1, 30, 10, 30)

    def build(self, status, resolved_at=None):
        return Report(
            complaint_id="SMC-2026-001234",
            status=status,
            created_at=self.created,
            updated_at=self.created + timedelta(days=1),
            resolved_at=resolved_at,
        )

    def test_pending_report(self):
        steps = derive_timeline(self.build(Report.Status.PENDING))
        self.assertEqual([step.title for step in steps], ["Reported", "Under Review", "In Progress", "Resolved"])
        self.assertEqual([step.is_completed for step in steps], [True, True, False, False])
        self.assertEqual(steps[0].date, self.created)
        self.assertEqual(steps[1].date, self.created + timedelta(hours=1))
        self.assertEqual(steps[2].as_dict()["date"], "Pending")
        self.assertEqual(steps[3].as_dict()["date"], "Pending")

    def test_in_progress_report_uses_updated_at(self):
        steps = derive_timeline(self.build(Report.Status.IN_PROGRESS))
        self.assertTrue(steps[2].is_completed)
        self.assertEqual(steps[2].date, self.created + timedelta(days=1))
        self.assertFalse(steps[3].is_completed)

    def test_resolved_report_uses_resolved_at(self):
        resolved_at = self.created + timedelta(days=2)
        steps = derive_timeline(self.build(Report.Status.RESOLVED, resolved_at=resolved_at))
        self.assertTrue(all(step.is_completed for step in steps))
        self.assertEqual(steps[3].date, resolved_at)

    def test_completed_steps_never_follow_incomplete_ones(self):
        for status in Report.Status.values:
            resolved_at = self.created if status == Report.Status.RESOLVED else None
            completed = [step.is_completed for step in derive_timeline(self.build(status, resolved_at))]
            self.assertEqual(completed, sorted(completed, reverse=True), status)


class RoleTests(PortalTestMixin, TestCase):
    def test_roles(self):
        worker = self.make_worker()
        admin = self.make_admin()
        superuser = User.objects.create_superuser("root", "root@example.com", "StrongPass123!")
        citizen = User.objects.create_user(username="citizen", password="StrongPass123!")

        self.assertEqual(role_for(AnonymousUser()), Role.CITIZEN)
        self.assertEqual(role_for(citizen), Role.CITIZEN)
        self.assertEqual(role_for(worker), Role.WORKER)
        self.assertEqual(role_for(admin), Role.ADMIN)
        self.assertEqual(role_for(superuser), Role.ADMIN)

    def test_workers_may_only_update_their_own_reports(self):
        worker = self.make_worker()
        other_worker = self.make_worker("worker7", "worker7@example.com")
        admin = self.make_admin()
        report = lifecycle.assign_worker(self.create_report().pk, worker.pk)

        self.assertTrue(can_update_report(worker, report))
        self.assertTrue(can_update_report(admin, report))
        self.assertFalse(can_update_report(other_worker, report))
        self.assertFalse(can_update_report(AnonymousUser(), report))


class SelectorTests(PortalTestMixin, TestCase):
    def test_filters_and_stats(self):
        worker = self.make_worker()
        first = self.create_report(ward="ward-1", location="Station Road underpass")
        self.create_report(ward="ward-2")
        third = self.create_report(ward="ward-1")
        lifecycle.assign_worker(first.pk, worker.pk)
        lifecycle.set_status(third.pk, Report.Status.RESOLVED)

        queryset = Report.objects.all()
        self.assertEqual(filter_reports(queryset, {"ward": "ward-1"}).count(), 2)
        self.assertEqual(filter_reports(queryset, {"status": "resolved"}).get(), third)
        self.assertEqual(filter_reports(queryset, {"q": "underpass"}).get(), first)
        self.assertEqual(filter_reports(queryset, {"q": first.complaint_id}).get(), first)
        self.assertEqual(filter_reports(queryset, {"status": "all", "start_date": "bad"}).count(), 3)

        self.assertEqual(
            report_stats(),
            {"total": 3, "pending": 1, "in_progress": 1, "resolved": 1},
        )

    def test_public_projection_hides_contact_details(self):
        data = public_report_data(self.create_report(), include_timeline=True)
        self.assertNotIn("reporter_phone", data)
        self.assertNotIn("reporter_email", data)
        self.assertNotIn("assigned_to", data)
        self.assertEqual(data["reported_by"], "Rajesh")
        self.assertEqual(len(data["timeline"]), 4)


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class PortalViewTests(PortalTestMixin, TestCase):
    def setUp(self):
        self.admin = self.make_admin()
        self.worker = self.make_worker()
        self.citizen = User.objects.create_user(username="citizen", password="StrongPass123!")

    def test_public_submission_returns_complaint_id(self):
        response = self.client.post(reverse("reports:report_create"), data=report_data())
        self.assertEqual(response.status_code, 201)
        complaint_id = response.json()["complaint_id"]
        self.assertRegex(complaint_id, COMPLAINT_ID_PATTERN)
        self.assertTrue(Report.objects.filter(complaint_id=complaint_id).exists())

    def test_invalid_submission_returns_field_errors(self):
        response = self.client.post(reverse("reports:report_create"), data=report_data(reporter_phone="abc"))
        self.assertEqual(response.status_code, 400)
        self.assertIn("reporter_phone", response.json()["errors"])
        self.assertFalse(Report.objects.exists())

    def test_track_complaint_returns_timeline(self):
        report = self.create_report()
        response = self.client.get(reverse("reports:track", kwargs={"complaint_id": report.complaint_id.lower()}))
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["complaint_id"], report.complaint_id)
        self.assertEqual(payload["timeline"][0]["status"], "Reported")
        self.assertNotIn("reporter_phone", payload)

    def test_track_unknown_complaint_returns_404(self):
        response = self.client.get(reverse("reports:track", kwargs={"complaint_id": "SMC-2026-999999"}))
        self.assertEqual(response.status_code, 404)

    def test_anonymous_submission_passes_csrf_checks(self):
        csrf_client = Client(enforce_csrf_checks=True)
        csrf_client.get(reverse("reports:home"))
        response = csrf_client.post(reverse("reports:report_create"), data=report_data())
        self.assertEqual(response.status_code, 201)
        self.assertRegex(response.json()["complaint_id"], COMPLAINT_ID_PATTERN)

    def test_read_failure_is_reported_as_unavailable(self):
        report = self.create_report()
        with mock.patch.object(Report.objects, "select_related", side_effect=DatabaseError("connection lost")):
            with self.assertRaises(PersistenceError):
                lifecycle.get_report(report.complaint_id)
            response = self.client.get(reverse("reports:track", kwargs={"complaint_id": report.complaint_id}))
        self.assertEqual(response.status_code, 503)

    def test_dashboard_redirects_to_portal_login(self):
        response = self.client.get(reverse("reports:worker_dashboard"))
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response["Location"].startswith(reverse("reports:login")))

    def test_worker_signs_in_through_portal_login(self):
        self.assertFalse(self.worker.is_staff)
        client = Client(enforce_csrf_checks=True)
        login_url = reverse("reports:login")
        self.assertEqual(client.get(login_url).json(), {"authenticated": False, "role": Role.CITIZEN})
        token = client.cookies["csrftoken"].value

        response = client.post(
            login_url,
            data={
                "username": "worker42",
                "password": "StrongPass123!",
                "next": reverse("reports:worker_dashboard"),
                "csrfmiddlewaretoken": token,
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], Role.WORKER)
        self.assertEqual(response.json()["next"], reverse("reports:worker_dashboard"))
        self.assertEqual(client.get(reverse("reports:worker_dashboard")).status_code, 200)

        response = client.post(reverse("reports:logout"), data={"csrfmiddlewaretoken": client.cookies["csrftoken"].value})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(client.get(reverse("reports:worker_dashboard")).status_code, 302)

    def test_portal_login_rejects_bad_credentials(self):
        response = self.client.post(reverse("reports:login"), data={"username": "worker42", "password": "wrong"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("__all__", response.json()["errors"])

    def test_portal_login_drops_offsite_next(self):
        response = self.client.post(
            reverse("reports:login"),
            data={"username": "worker42", "password": "StrongPass123!", "next": "https://evil.example.com/"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["next"], "")

    def test_home_lists_stats_and_recent_reports(self):
        self.create_report()
        response = self.client.get(reverse("reports:home"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["stats"]["total"], 1)
        self.assertEqual(len(response.json()["recent_reports"]), 1)

    def test_dashboard_requires_admin(self):
        response = self.client.get(reverse("reports:staff_dashboard"))
        self.assertEqual(response.status_code, 302)

        self.client.force_login(self.citizen)
        self.assertEqual(self.client.get(reverse("reports:staff_dashboard")).status_code, 403)

        self.client.force_login(self.worker)
        self.assertEqual(self.client.get(reverse("reports:staff_dashboard")).status_code, 403)

    def test_dashboard_filters_and_paginates(self):
        for index in range(12):
            self.create_report(ward="ward-5" if index % 2 == 0 else "ward-6")
        self.client.force_login(self.admin)
        response = self.client.get(reverse("reports:staff_dashboard"))
        payload = response.json()
        self.assertEqual(len(payload["reports"]), 10)
        self.assertEqual(payload["num_pages"], 2)
        self.assertEqual(payload["stats"]["total"], 12)

        response = self.client.get(reverse("reports:staff_dashboard"), data={"ward": "ward-5"})
        self.assertTrue(all(item["ward"] == "ward-5" for item in response.json()["reports"]))

    def test_admin_assigns_and_unassigns_worker(self):
        report = self.create_report()
        url = reverse("reports:report_assign", kwargs={"complaint_id": report.complaint_id})
        self.client.force_login(self.admin)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(url, data={"worker": self.worker.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], Report.Status.IN_PROGRESS)
        self.assertEqual(len(mail.outbox), 1)

        response = self.client.post(url, data={"worker": ""})
        self.assertEqual(response.json()["status"], Report.Status.PENDING)
        self.assertIsNone(response.json()["assigned_to"])

        response = self.client.post(url, data={"worker": self.citizen.pk})
        self.assertEqual(response.status_code, 404)

    def test_worker_updates_only_assigned_reports(self):
        assigned = lifecycle.assign_worker(self.create_report().pk, self.worker.pk)
        unassigned = self.create_report()
        self.client.force_login(self.worker)

        response = self.client.post(
            reverse("reports:report_status", kwargs={"complaint_id": assigned.complaint_id}),
            data={"status": Report.Status.RESOLVED},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.json()["resolved_at"])

        response = self.client.post(
            reverse("reports:report_status", kwargs={"complaint_id": unassigned.complaint_id}),
            data={"status": Report.Status.RESOLVED},
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.post(
            reverse("reports:report_status", kwargs={"complaint_id": assigned.complaint_id}),
            data={"status": "closed"},
        )
        self.assertEqual(response.status_code, 400)

    def test_worker_uploads_repair_image(self):
        report = lifecycle.assign_worker(self.create_report().pk, self.worker.pk)
        self.client.force_login(self.worker)
        response = self.client.post(
            reverse("reports:report_repair_image", kwargs={"complaint_id": report.complaint_id}),
            data={"kind": "after", "url": "https://storage.example.com/after.jpg"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["after_image_url"], "https://storage.example.com/after.jpg")

    def test_admin_manages_workers(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse("reports:worker_list"),
            data={
                "username": "worker99",
                "email": "worker99@example.com",
                "password": "StrongPass123!",
                "full_name": "Team Beta",
            },
        )
        self.assertEqual(response.status_code, 201)
        new_worker = User.objects.get(username="worker99")
        self.assertEqual(role_for(new_worker), Role.WORKER)

        usernames = [item["username"] for item in self.client.get(reverse("reports:worker_list")).json()["workers"]]
        self.assertIn("worker99", usernames)

        response = self.client.post(reverse("reports:worker_remove", kwargs={"user_id": new_worker.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(UserRole.objects.filter(user=new_worker).exists())


class SeedDataCommandTests(TestCase):
    def test_seed_creates_reports_through_lifecycle(self):
        call_command("seed_data", stdout=StringIO())
        self.assertEqual(Report.objects.count(), 3)
        self.assertEqual(report_stats()["resolved"], 1)
        for report in Report.objects.all():
            self.assertRegex(report.complaint_id, COMPLAINT_ID_PATTERN)
            self.assertEqual(report.resolved_at is not None, report.status == Report.Status.RESOLVED)

        call_command("seed_data", stdout=StringIO())
        self.assertEqual(Report.objects.count(), 3)

    def test_seeded_accounts_sign_in_through_portal_login(self):
        call_command("seed_data", stdout=StringIO())
        for username, password, dashboard in (
            ("ward_admin", "AdminPass123!", "reports:staff_dashboard"),
            ("field_worker", "WorkerPass123!", "reports:worker_dashboard"),
        ):
            client = Client()
            response = client.post(reverse("reports:login"), data={"username": username, "password": password})
            self.assertEqual(response.status_code, 200, username)
            self.assertEqual(client.get(reverse(dashboard)).status_code, 200, username)
