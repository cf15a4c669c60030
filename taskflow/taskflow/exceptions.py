"""
Error taxonomy shared by the lifecycle, dispatch and job layers.

ValidationError is Django's own, re-exported so callers can import every
error kind from one place.
"""

from contextlib import contextmanager
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

logger = logging.getLogger(__name__)


class TaskflowError(Exception):
    """Base class for errors raised by the taskflow core."""


class NotFoundError(TaskflowError):
    """A referenced user, project or task does not exist."""

    def __init__(self, model_name, pk):
        self.model_name = model_name
        self.pk = pk
        super().__init__(f"{model_name} {pk!r} does not exist.")


class TransactionError(TaskflowError):
    """Persistence failed mid-transaction; everything was rolled back."""


class DeliveryError(TaskflowError):
    """A notification channel failed for one recipient."""

    def __init__(self, message, *, recipient_id=None, channel=None):
        self.recipient_id = recipient_id
        self.channel = channel
        super().__init__(message)


class WebhookError(TaskflowError):
    """The external webhook call failed."""


class InvalidJobError(TaskflowError):
    """A job was given a payload or type it cannot handle."""


@contextmanager
def atomic_operation(name):
    """
    Run a lifecycle mutation in one transaction.

    Database failures roll back and surface as TransactionError;
    every other error propagates unchanged.
    """
    try:
        with transaction.atomic():
            yield
    except DatabaseError as exc:
        logger.exception("Transaction for %s rolled back", name)
        raise TransactionError(f"{name} failed: {exc}") from exc


def after_commit(func, /, *args, **kwargs):
    """
    Call func(*args, **kwargs) once the current transaction commits.

    The change has already committed by then, so a failing callback is
    logged and never reaches the caller or the callbacks queued after it.
    """
    name = getattr(func, "__qualname__", repr(func))

    def callback():
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("Post-commit call to %s failed", name)

    callback.__qualname__ = f"after_commit({name})"
    transaction.on_commit(callback)


__all__ = [
    "TaskflowError",
    "NotFoundError",
    "ValidationError",
    "TransactionError",
    "DeliveryError",
    "WebhookError",
    "InvalidJobError",
    "atomic_operation",
    "after_commit",
]
