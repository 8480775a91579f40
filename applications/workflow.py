"""
Transaction plumbing shared by every workflow operation.

A transition step receives the freshly locked application, checks its
preconditions, mutates it, and returns a TransitionResult holding the
notifications to send. run_transition commits the step atomically and only
then hands the notifications to the sink, so a delivery failure never undoes
a transition.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from notifications.models import Notification
from notifications.services import PendingNotification, dispatch_notifications

from .exceptions import NotFound, ServerError, Unauthorized, WorkflowError
from .models import Application, ApplicationAuditLog, ApplicationWorkflow

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    Application.Status.DRAFT: "Your application has been saved as draft.",
    Application.Status.PENDING: "Your application has been submitted and is pending validation.",
    Application.Status.VALIDATED: "Your application has been validated.",
    Application.Status.IN_PROGRESS: "Your application is now being processed.",
    Application.Status.APPROVED: "Congratulations! Your application has been approved.",
    Application.Status.REJECTED: "Your application has been rejected.",
    Application.Status.COMPLETED: "Your application process has been completed.",
}


@dataclass
class TransitionResult:
    application: Application
    rr_number: Optional[str] = None
    assignment: object = None
    notifications: List[PendingNotification] = field(default_factory=list)

    def notify(self, user_id, notification_type, title, message):
        self.notifications.append(PendingNotification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            application_id=self.application.pk,
        ))

    def notify_citizen(self, title, message):
        self.notify(self.application.citizen_id, Notification.Type.STATUS_CHANGED, title, message)


def ensure_actor(actor):
    if actor is None or not actor.is_authenticated or not actor.is_active:
        raise Unauthorized()


def load_for_update(application_id):
    """Re-read the application under a row lock for the rest of the transaction."""
    try:
        return Application.objects.select_for_update().get(pk=application_id)
    except (Application.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound("Application not found")


def run_transition(step, application_id, actor, now=None, **kwargs):
    """
    Execute `step(application, actor, now, **kwargs)` as one atomic unit,
    then dispatch the notifications it queued.
    """
    ensure_actor(actor)
    now = now or timezone.now()

    try:
        with transaction.atomic():
            application = load_for_update(application_id)
            result = step(application, actor, now, **kwargs)
    except WorkflowError:
        raise
    except DatabaseError as exc:
        logger.exception("Transition %s failed for application %s", step.__name__, application_id)
        raise ServerError("Failed to update application") from exc

    dispatch_notifications(result.notifications)
    return result


def change_status(application, to_status, **fields):
    application.status = to_status
    for name, value in fields.items():
        setattr(application, name, value)
    application.save()


def record_transition(application, from_status, to_status, actor, comments, now):
    logger.info(
        "Application %s: %s -> %s by %s",
        application.pk, from_status or '-', to_status, getattr(actor, 'pk', None),
    )
    return ApplicationWorkflow.objects.create(
        application=application,
        from_status=from_status,
        to_status=to_status,
        changed_by=actor,
        comments=comments or '',
        created_at=now,
    )


def record_audit(application, action, actor, old_values, new_values, ip_address, now):
    return ApplicationAuditLog.objects.create(
        application=application,
        action=action,
        performed_by=actor,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        created_at=now,
    )
