from itertools import zip_longest

from django.http import JsonResponse
from django.views import View

from accounts.mixins import ApiLoginRequiredMixin
from accounts.utils import get_client_ip
from . import services
from .exceptions import ValidationError
from .forms import (
    ApplicationCreateForm, CommentForm, ForwardForm, OverrideForm, RejectForm, ValidateForm, VerifyDocumentForm,
    raise_for_form,
)
from .mixins import JsonBodyMixin, WorkflowErrorMixin
from .models import Application, Document, ServiceCategory
from .queries import get_application, get_application_stats, list_applications, visible_applications
from .serializers import serialize_application, serialize_application_detail, serialize_document


class ApiView(ApiLoginRequiredMixin, WorkflowErrorMixin, JsonBodyMixin, View):
    pass


class ApplicationListView(ApiView):
    def get(self, request):
        status = request.GET.get('status') or None
        if status and status not in Application.Status.values:
            raise ValidationError(f"Unknown status {status}")

        result = list_applications(
            request.user,
            status=status,
            assigned_to_me=bool(self.get_bool_param(request, 'assignedToMe')),
            search=(request.GET.get('search') or '').strip() or None,
            page=self.get_int_param(request, 'page', 1),
            limit=self.get_int_param(request, 'limit', None),
        )
        return JsonResponse({
            'applications': [serialize_application(a) for a in result['applications']],
            'pagination': result['pagination'],
        })

    def post(self, request):
        form = ApplicationCreateForm(self.get_payload(request))
        data = raise_for_form(form)

        uploads = request.FILES.getlist('documents')
        document_types = request.POST.getlist('documentTypes')
        if len(document_types) > len(uploads):
            raise ValidationError("More document types than documents")
        documents = []
        for upload, document_type in zip_longest(uploads, document_types):
            document_type = document_type or Document.DocumentType.OTHER
            if document_type not in Document.DocumentType.values:
                raise ValidationError(f"Unknown document type {document_type}")
            documents.append((upload, document_type))

        result = services.create_application(
            request.user,
            service_category_id=data['service_category_id'],
            preferred_officer_id=data['preferred_officer_id'],
            application_details=data['application_details'],
            documents=documents,
            ip_address=get_client_ip(request),
        )
        return JsonResponse({
            'application': serialize_application(result.application),
            'message': "Application created successfully",
        }, status=201)


class ApplicationDetailView(ApiView):
    def get(self, request, application_id):
        application = get_application(request.user, application_id)
        return JsonResponse({'application': serialize_application_detail(application)})

    def patch(self, request, application_id):
        payload = self.get_payload(request)
        action = payload.pop('action', None)
        handler = getattr(self, f'do_{action}', None) if isinstance(action, str) else None
        if handler is None:
            raise ValidationError("Invalid action")

        result, message = handler(request, application_id, payload)
        response = {
            'application': serialize_application(result.application),
            'message': message,
        }
        if result.rr_number:
            response['rrNumber'] = result.rr_number
        return JsonResponse(response)

    def do_submit(self, request, application_id, payload):
        result = services.submit_application(application_id, request.user, ip_address=get_client_ip(request))
        return result, "Application submitted successfully"

    def do_validate(self, request, application_id, payload):
        data = raise_for_form(ValidateForm(payload))
        result = services.validate_application(
            application_id, request.user,
            is_documents_complete=data['is_documents_complete'],
            is_eligibility_verified=data['is_eligibility_verified'],
            validation_notes=data['validation_notes'],
            should_reject=data['should_reject'],
            rejection_reason=data['rejection_reason'],
            comments=data['comments'],
            ip_address=get_client_ip(request),
        )
        if data['should_reject']:
            return result, "Application rejected"
        return result, f"Application validated successfully. RR Number: {result.rr_number}"

    def do_process(self, request, application_id, payload):
        data = raise_for_form(CommentForm(payload))
        result = services.process_application(
            application_id, request.user, comments=data['comments'], ip_address=get_client_ip(request),
        )
        return result, "Application processing started"

    def do_approve(self, request, application_id, payload):
        data = raise_for_form(CommentForm(payload))
        result = services.approve_application(
            application_id, request.user, comments=data['comments'], ip_address=get_client_ip(request),
        )
        return result, "Application approved successfully"

    def do_reject(self, request, application_id, payload):
        data = raise_for_form(RejectForm(payload))
        result = services.reject_application(
            application_id, request.user,
            rejection_reason=data['rejection_reason'],
            comments=data['comments'],
            ip_address=get_client_ip(request),
        )
        return result, "Application rejected"

    def do_forward(self, request, application_id, payload):
        data = raise_for_form(ForwardForm(payload))
        result = services.forward_application(
            application_id, request.user,
            target_officer_id=data['target_officer_id'],
            priority=data['priority'],
            instructions=data['instructions'],
            ip_address=get_client_ip(request),
        )
        return result, "Application forwarded successfully"

    def do_override(self, request, application_id, payload):
        data = raise_for_form(OverrideForm(payload))
        result = services.override_status(
            application_id, request.user,
            to_status=data['status'],
            comments=data['comments'],
            ip_address=get_client_ip(request),
        )
        return result, f"Application status changed to {result.application.status}"


class ApplicationStatsView(ApiView):
    def get(self, request):
        return JsonResponse({'stats': get_application_stats(visible_applications(request.user))})


class DocumentVerifyView(ApiView):
    def post(self, request, document_id):
        data = raise_for_form(VerifyDocumentForm(self.get_payload(request)))
        document = services.verify_document(
            document_id, request.user,
            is_verified=data['is_verified'],
            notes=data['notes'],
            ip_address=get_client_ip(request),
        )
        return JsonResponse({'document': serialize_document(document)})


class ServiceCategoryListView(ApiView):
    def get(self, request):
        categories = ServiceCategory.objects.filter(is_active=True)
        data = [
            {
                'id': category.id,
                'name': category.name,
                'description': category.description,
                'slaDays': category.sla_days,
            }
            for category in categories
        ]
        return JsonResponse({'serviceCategories': data})
