from django.urls import path

from .views import (
    HomeView,
    PortalLoginView,
    PortalLogoutView,
    RepairImageView,
    ReportAssignView,
    ReportCreateView,
    ReportStatusView,
    StaffDashboardView,
    TrackComplaintView,
    WorkerDashboardView,
    WorkerListView,
    WorkerRemoveView,
)

app_name = "reports"

urlpatterns = [
    path("", HomeView.as_view(), name="home"),
    path("accounts/login/", PortalLoginView.as_view(), name="login"),
    path("accounts/logout/", PortalLogoutView.as_view(), name="logout"),
    path("reports/new/", ReportCreateView.as_view(), name="report_create"),
    path("track/<str:complaint_id>/", TrackComplaintView.as_view(), name="track"),
    path("staff/dashboard/", StaffDashboardView.as_view(), name="staff_dashboard"),
    path("worker/dashboard/", WorkerDashboardView.as_view(), name="worker_dashboard"),
    path("staff/reports/<str:complaint_id>/assign/", ReportAssignView.as_view(), name="report_assign"),
    path("staff/reports/<str:complaint_id>/status/", ReportStatusView.as_view(), name="report_status"),
    path("staff/reports/<str:complaint_id>/repair-image/", RepairImageView.as_view(), name="report_repair_image"),
    path("staff/workers/", WorkerListView.as_view(), name="worker_list"),
    path("staff/workers/<int:user_id>/remove/", WorkerRemoveView.as_view(), name="worker_remove"),
]
