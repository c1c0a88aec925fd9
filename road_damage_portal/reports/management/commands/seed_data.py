from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from reports import lifecycle
from reports.models import Report, UserRole
from reports.roles import grant_worker_role

User = get_user_model()


class Command(BaseCommand):
    help = "Seed the database with sample staff accounts and road damage reports."

    def handle(self, *args, **options):
        admin_user, created_admin = User.objects.get_or_create(
            username="ward_admin",
            defaults={"email": "ward_admin@example.com", "first_name": "Ward", "last_name": "Admin"},
        )
        if created_admin:
            admin_user.set_password("AdminPass123!")
            admin_user.save()
        UserRole.objects.update_or_create(user=admin_user, defaults={"role": UserRole.Role.ADMIN})

        worker_user, created_worker = User.objects.get_or_create(
            username="field_worker",
            defaults={"email": "field_worker@example.com", "first_name": "Team", "last_name": "Alpha"},
        )
        if created_worker:
            worker_user.set_password("WorkerPass123!")
            worker_user.save()
        grant_worker_role(worker_user)

        sample_definitions = [
            {
                "reporter_name": "Rajesh Kumar",
                "reporter_phone": "9876543210",
                "reporter_email": "rajesh@example.com",
                "damage_type": Report.DamageType.POTHOLE,
                "severity": Report.Severity.CRITICAL,
                "location": "MG Road, Near City Mall",
                "ward": "ward-12",
                "status": Report.Status.IN_PROGRESS,
            },
            {
                "reporter_name": "Anita Desai",
                "reporter_phone": "9123456780",
                "damage_type": Report.DamageType.WATERLOGGING,
                "severity": Report.Severity.MODERATE,
                "location": "Station Road underpass",
                "ward": "ward-3",
                "status": Report.Status.PENDING,
            },
            {
                "reporter_name": "Vikram Rao",
                "reporter_phone": "9988776655",
                "damage_type": Report.DamageType.CRACK,
                "severity": Report.Severity.LOW,
                "location": "Lake View Colony, 2nd Cross",
                "ward": "ward-7",
                "status": Report.Status.RESOLVED,
            },
        ]

        created_count = 0
        for item in sample_definitions:
            status = item.pop("status")
            if Report.objects.filter(reporter_phone=item["reporter_phone"], location=item["location"]).exists():
                continue
            report = lifecycle.create_report(item)
            if status != Report.Status.PENDING:
                lifecycle.assign_worker(report.pk, worker_user.pk)
            if status == Report.Status.RESOLVED:
                lifecycle.set_status(report.pk, status)
            created_count += 1

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.WARNING(
                "Credentials: ward_admin / AdminPass123!, "
                "field_worker / WorkerPass123!"
            )
        )
        self.stdout.write(self.style.SUCCESS(f"New reports created: {created_count}"))
