from django.core.exceptions import ObjectDoesNotExist, ValidationError

__all__ = [
    "LifecycleError",
    "NotFoundError",
    "NotificationError",
    "PersistenceError",
    "ValidationError",
]


class LifecycleError(Exception):
    """Base class for report lifecycle failures."""


class NotFoundError(LifecycleError, ObjectDoesNotExist):
    """Raised when a referenced report or worker does not exist."""


class PersistenceError(LifecycleError):
    """Raised when a durable read or write of a report fails."""


class NotificationError(LifecycleError):
    """Raised by the notification sender; never leaves the dispatcher."""
