from django.http import JsonResponse

from accounts.models import User
from applications.models import Application, ApplicationWorkflow
from applications.queries import get_application_stats, visible_applications
from applications.serializers import serialize_application, serialize_workflow_entry
from applications.views import ApiView
from notifications.models import Notification

RECENT_ACTIVITY_LIMIT = 10


class DashboardView(ApiView):
    """
    Role-aware landing summary: counts over what the caller can see,
    the latest workflow activity on those applications, and unread alerts.
    """
    def get(self, request):
        user = request.user
        applications = visible_applications(user)

        recent_activity = ApplicationWorkflow.objects.filter(
            application__in=applications.values('pk')
        ).select_related('changed_by', 'changed_by__officer_profile', 'changed_by__citizen_profile').order_by(
            '-created_at', '-id'
        )[:RECENT_ACTIVITY_LIMIT]

        data = {
            'role': user.role,
            'displayName': user.display_name,
            'stats': get_application_stats(applications),
            'recentActivity': [serialize_workflow_entry(entry) for entry in recent_activity],
            'unreadNotifications': Notification.objects.filter(user=user, is_read=False).count(),
        }

        # Work queue: what is waiting on this caller right now.
        if user.role == User.Role.FRONT_DESK:
            queue = applications.filter(status=Application.Status.PENDING).order_by('submitted_at')
        elif user.is_officer:
            queue = applications.filter(
                status__in=(Application.Status.VALIDATED, Application.Status.IN_PROGRESS)
            ).order_by('validated_at')
        else:
            queue = None
        if queue is not None:
            data['queue'] = [serialize_application(a) for a in queue[:RECENT_ACTIVITY_LIMIT]]

        return JsonResponse(data)
