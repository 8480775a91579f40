from django.http import JsonResponse

from applications.queries import get_application
from applications.serializers import serialize_assignment
from applications.views import ApiView
from .services import assignment_chain


class AssignmentChainView(ApiView):
    """
    Forwarding history of one application, oldest first.
    """
    def get(self, request, application_id):
        application = get_application(request.user, application_id)
        chain = assignment_chain(application)
        return JsonResponse({
            'applicationId': str(application.pk),
            'currentHolderId': application.current_holder_id,
            'assignments': [serialize_assignment(a) for a in chain],
        })
