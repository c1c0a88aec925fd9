import logging

from django.contrib.auth import get_user_model, login, logout
from django.contrib.auth.forms import AuthenticationForm
from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.core.exceptions import PermissionDenied
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.csrf import csrf_exempt, ensure_csrf_cookie
from django.views import View

from . import lifecycle
from .exceptions import NotFoundError, PersistenceError, ValidationError
from .forms import WorkerCreateForm
from .models import Report
from .presenters import public_report_data, staff_report_data, worker_data
from .roles import can_update_report, role_for, create_worker, is_admin, is_worker, list_workers, revoke_worker_role
from .selectors import filter_reports, recent_reports, report_stats, reports_assigned_to

logger = logging.getLogger(__name__)

User = get_user_model()

PAGE_SIZE = 10


def error_response(exc):
    if isinstance(exc, ValidationError):
        if hasattr(exc, "error_dict"):
            errors = exc.message_dict
        else:
            errors = {"__all__": exc.messages}
        return JsonResponse({"errors": errors}, status=400)
    if isinstance(exc, NotFoundError):
        return JsonResponse({"error": str(exc)}, status=404)
    logger.error("Report storage failure: %s", exc)
    return JsonResponse({"error": "The report store is unavailable, please retry."}, status=503)


class RoleRequiredMixin(LoginRequiredMixin, UserPassesTestMixin):
    def handle_no_permission(self):
        if self.request.user.is_authenticated:
            raise PermissionDenied("Staff access required.")
        return super().handle_no_permission()


class AdminRequiredMixin(RoleRequiredMixin):
    def test_func(self):
        return is_admin(self.request.user)


class StaffRequiredMixin(RoleRequiredMixin):
    def test_func(self):
        return is_admin(self.request.user) or is_worker(self.request.user)


@method_decorator(ensure_csrf_cookie, name="dispatch")
class PortalLoginView(View):
    def get(self, request):
        return JsonResponse({"authenticated": request.user.is_authenticated, "role": role_for(request.user)})

    def post(self, request):
        form = AuthenticationForm(request, data=request.POST)
        if not form.is_valid():
            return JsonResponse({"errors": form.errors.get_json_data()}, status=400)
        user = form.get_user()
        login(request, user)
        next_url = request.POST.get("next") or request.GET.get("next", "")
        if not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()):
            next_url = ""
        return JsonResponse({"username": user.get_username(), "role": role_for(user), "next": next_url})


class PortalLogoutView(View):
    def post(self, request):
        logout(request)
        return JsonResponse({"authenticated": False})


class HomeView(View):
    def get(self, request):
        return JsonResponse(
            {
                "stats": report_stats(),
                "recent_reports": [public_report_data(report) for report in recent_reports()],
            }
        )


# Citizens submit anonymously; there is no session for a CSRF token to protect.
@method_decorator(csrf_exempt, name="dispatch")
class ReportCreateView(View):
    def post(self, request):
        try:
            report = lifecycle.create_report(request.POST)
        except (ValidationError, PersistenceError) as exc:
            return error_response(exc)
        return JsonResponse(
            {
                "complaint_id": report.complaint_id,
                "status": report.status,
                "message": f"Your complaint ID is {report.complaint_id}. You can track the status using this ID.",
            },
            status=201,
        )


class TrackComplaintView(View):
    def get(self, request, complaint_id):
        try:
            report = lifecycle.get_report(complaint_id)
        except (NotFoundError, PersistenceError) as exc:
            return error_response(exc)
        return JsonResponse(public_report_data(report, include_timeline=True))


class StaffDashboardView(AdminRequiredMixin, View):
    def get(self, request):
        queryset = Report.objects.select_related("assigned_to")
        queryset = filter_reports(queryset, request.GET).order_by("-created_at")
        page = Paginator(queryset, PAGE_SIZE).get_page(request.GET.get("page"))
        return JsonResponse(
            {
                "stats": report_stats(),
                "reports": [staff_report_data(report) for report in page.object_list],
                "page": page.number,
                "num_pages": page.paginator.num_pages,
                "workers": [worker_data(worker) for worker in list_workers()],
            }
        )


class WorkerDashboardView(StaffRequiredMixin, View):
    def get(self, request):
        queryset = reports_assigned_to(request.user)
        return JsonResponse(
            {
                "stats": report_stats(queryset),
                "reports": [staff_report_data(report) for report in queryset],
            }
        )


class ReportAssignView(AdminRequiredMixin, View):
    def post(self, request, complaint_id):
        worker_id = request.POST.get("worker", "").strip() or None
        try:
            report = lifecycle.get_report(complaint_id)
            report = lifecycle.assign_worker(report.pk, worker_id)
        except (NotFoundError, PersistenceError) as exc:
            return error_response(exc)
        return JsonResponse(staff_report_data(report))


class ReportActionMixin(StaffRequiredMixin):
    def get_report(self, complaint_id):
        report = lifecycle.get_report(complaint_id)
        if not can_update_report(self.request.user, report):
            raise PermissionDenied("This report is not assigned to you.")
        return report


class ReportStatusView(ReportActionMixin, View):
    def post(self, request, complaint_id):
        try:
            report = self.get_report(complaint_id)
            report = lifecycle.set_status(report.pk, request.POST.get("status", ""))
        except (ValidationError, NotFoundError, PersistenceError) as exc:
            return error_response(exc)
        return JsonResponse(staff_report_data(report))


class RepairImageView(ReportActionMixin, View):
    def post(self, request, complaint_id):
        try:
            report = self.get_report(complaint_id)
            report = lifecycle.attach_repair_image(
                report.pk,
                request.POST.get("kind", ""),
                request.POST.get("url", ""),
            )
        except (ValidationError, NotFoundError, PersistenceError) as exc:
            return error_response(exc)
        return JsonResponse(staff_report_data(report))


class WorkerListView(AdminRequiredMixin, View):
    def get(self, request):
        return JsonResponse({"workers": [worker_data(worker) for worker in list_workers()]})

    def post(self, request):
        form = WorkerCreateForm(request.POST)
        if not form.is_valid():
            return JsonResponse({"errors": form.errors.get_json_data()}, status=400)
        worker = create_worker(**form.cleaned_data)
        return JsonResponse(worker_data(worker), status=201)


class WorkerRemoveView(AdminRequiredMixin, View):
    def post(self, request, user_id):
        worker = get_object_or_404(User, pk=user_id)
        if not revoke_worker_role(worker):
            return JsonResponse({"error": "User is not a worker."}, status=404)
        return JsonResponse({"removed": worker.pk})
