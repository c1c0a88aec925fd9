"""Portal roles and worker management."""
import logging

from django.contrib.auth import get_user_model
from django.db import models, transaction

from .exceptions import NotFoundError
from .models import UserRole

logger = logging.getLogger(__name__)

User = get_user_model()


class Role(models.TextChoices):
    ADMIN = "admin", "Admin"
    WORKER = "worker", "Worker"
    CITIZEN = "citizen", "Citizen"


def role_for(user) -> Role:
    if user is None or not user.is_authenticated:
        return Role.CITIZEN
    if user.is_superuser:
        return Role.ADMIN
    try:
        return Role(user.portal_role.role)
    except UserRole.DoesNotExist:
        return Role.CITIZEN


def is_admin(user) -> bool:
    return role_for(user) == Role.ADMIN


def is_worker(user) -> bool:
    return role_for(user) == Role.WORKER


def can_update_report(user, report) -> bool:
    """Admins may update any report, workers only the ones assigned to them."""
    role = role_for(user)
    if role == Role.ADMIN:
        return True
    return role == Role.WORKER and report.assigned_to_id == user.pk


def list_workers():
    return User.objects.filter(portal_role__role=Role.WORKER).order_by("first_name", "username")


def get_worker(worker_id):
    try:
        return list_workers().get(pk=int(worker_id))
    except (TypeError, ValueError, User.DoesNotExist):
        raise NotFoundError(f"Worker {worker_id!r} does not exist.") from None


def grant_worker_role(user):
    role, created = UserRole.objects.update_or_create(
        user=user,
        defaults={"role": Role.WORKER},
    )
    if created:
        logger.info("Granted worker role to %s", user.get_username())
    return role


def revoke_worker_role(user) -> bool:
    deleted, _ = UserRole.objects.filter(user=user, role=Role.WORKER).delete()
    if deleted:
        logger.info("Revoked worker role from %s", user.get_username())
    return bool(deleted)


@transaction.atomic
def create_worker(username: str, email: str, password: str, full_name: str = ""):
    first_name, _, last_name = full_name.strip().partition(" ")
    user = User.objects.create_user(
        username=username,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
    )
    grant_worker_role(user)
    return user


def display_name(user) -> str:
    return user.get_full_name() or user.get_username()
