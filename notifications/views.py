from django.http import JsonResponse

from applications.exceptions import ValidationError
from applications.views import ApiView
from .models import Notification
from .services import list_notifications, mark_all_read, mark_read


def serialize_notification(notification):
    application = notification.application
    return {
        'id': notification.pk,
        'notificationType': notification.notification_type,
        'title': notification.title,
        'message': notification.message,
        'isRead': notification.is_read,
        'createdAt': notification.created_at,
        'application': {
            'id': str(application.pk),
            'rrNumber': application.rr_number,
            'status': application.status,
            'serviceCategory': application.service_category.name,
        } if application else None,
    }


class NotificationListView(ApiView):
    def get(self, request):
        notification_type = request.GET.get('type') or None
        if notification_type and notification_type not in Notification.Type.values:
            raise ValidationError(f"Unknown notification type {notification_type}")

        result = list_notifications(
            request.user,
            is_read=self.get_bool_param(request, 'isRead'),
            notification_type=notification_type,
            page=self.get_int_param(request, 'page', 1),
            limit=self.get_int_param(request, 'limit', None),
        )
        return JsonResponse({
            'notifications': [serialize_notification(n) for n in result['notifications']],
            'pagination': result['pagination'],
            'unreadCount': result['unreadCount'],
        })


class NotificationReadView(ApiView):
    def post(self, request, notification_id):
        notification = mark_read(notification_id, request.user)
        return JsonResponse({'notification': serialize_notification(notification)})


class NotificationReadAllView(ApiView):
    def post(self, request):
        updated = mark_all_read(request.user)
        return JsonResponse({'updated': updated, 'message': "All notifications marked as read"})
