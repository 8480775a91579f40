import json
import logging

from django.http import JsonResponse, QueryDict

from .exceptions import ValidationError, WorkflowError

logger = logging.getLogger(__name__)

# camelCase request keys -> form field names
FIELD_ALIASES = {
    'serviceCategoryId': 'service_category_id',
    'preferredOfficerId': 'preferred_officer_id',
    'applicationDetails': 'application_details',
    'isDocumentsComplete': 'is_documents_complete',
    'isEligibilityVerified': 'is_eligibility_verified',
    'validationNotes': 'validation_notes',
    'shouldReject': 'should_reject',
    'rejectionReason': 'rejection_reason',
    'targetOfficerId': 'target_officer_id',
    'isVerified': 'is_verified',
}


class WorkflowErrorMixin:
    """
    Maps workflow errors onto JSON responses with their status code.
    Anything unexpected is logged and answered with a bare 500.
    """
    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except WorkflowError as error:
            if error.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, error.message)
            return JsonResponse(error.as_dict(), status=error.status_code)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return JsonResponse({'error': 'Internal server error', 'kind': 'server_error'}, status=500)


class JsonBodyMixin:
    def get_payload(self, request):
        """
        Request body as a dict with form field names, from JSON or form
        encoding. Django only parses form bodies for POST, so PATCH bodies
        are decoded here.
        """
        if request.content_type == 'application/json':
            try:
                data = json.loads(request.body or b'{}')
            except ValueError:
                raise ValidationError("Request body is not valid JSON")
            if not isinstance(data, dict):
                raise ValidationError("Request body must be a JSON object")
        elif request.method == 'POST':
            data = request.POST.dict()
        else:
            data = QueryDict(request.body, encoding=request.encoding).dict()
        return {FIELD_ALIASES.get(key, key): value for key, value in data.items()}

    def get_int_param(self, request, name, default):
        value = request.GET.get(name)
        if value in (None, ''):
            return default
        try:
            number = int(value)
        except ValueError:
            raise ValidationError(f"{name} must be a number")
        if number < 1:
            raise ValidationError(f"{name} must be positive")
        return number

    def get_bool_param(self, request, name):
        value = request.GET.get(name)
        if value is None:
            return None
        return value.lower() in ('1', 'true', 'yes')
