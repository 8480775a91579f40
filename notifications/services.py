import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from applications.exceptions import NotFound
from applications.queries import paginate
from .models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingNotification:
    """A notification the workflow wants sent once its transaction is done."""
    user_id: int
    notification_type: str
    title: str
    message: str
    application_id: Optional[object] = None


def notify(user_id, notification_type, title, message, application_id=None):
    return Notification.objects.create(
        user_id=user_id,
        notification_type=notification_type,
        application_id=application_id,
        title=title,
        message=message,
        is_read=False,
    )


def dispatch_notifications(pending):
    """
    Deliver a batch of pending notifications. Best-effort: a failure is
    logged and the rest of the batch still goes out.
    Returns the number delivered.
    """
    delivered = 0
    for item in pending:
        try:
            # Own savepoint so one bad row cannot poison an outer transaction.
            with transaction.atomic():
                notify(
                    item.user_id,
                    item.notification_type,
                    item.title,
                    item.message,
                    application_id=item.application_id,
                )
            delivered += 1
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to user %s for application %s",
                item.notification_type, item.user_id, item.application_id,
            )
    return delivered


def list_notifications(user, is_read=None, notification_type=None, page=1, limit=None):
    queryset = Notification.objects.filter(user=user).select_related(
        'application', 'application__service_category'
    )
    if is_read is not None:
        queryset = queryset.filter(is_read=is_read)
    if notification_type:
        queryset = queryset.filter(notification_type=notification_type)

    page_obj, pagination = paginate(queryset, page, limit)
    return {
        'notifications': list(page_obj),
        'pagination': pagination,
        'unreadCount': Notification.objects.filter(user=user, is_read=False).count(),
    }


def mark_read(notification_id, user):
    """Only the recipient may mark a notification read."""
    notification = Notification.objects.filter(pk=notification_id, user=user).first()
    if notification is None:
        raise NotFound("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


def mark_all_read(user):
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True)
