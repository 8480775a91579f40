from django.utils import timezone


def officer_summary(user):
    if user is None:
        return None
    profile = getattr(user, 'officer_profile', None)
    return {
        'id': user.pk,
        'fullName': profile.full_name if profile else user.display_name,
        'designation': profile.designation if profile else '',
        'role': user.role,
    }


def serialize_application(application, now=None):
    now = now or timezone.now()
    category = application.service_category
    return {
        'id': str(application.pk),
        'rrNumber': application.rr_number,
        'status': application.status,
        'citizenId': application.citizen_id,
        'citizenName': application.citizen.display_name,
        'serviceCategory': {
            'id': category.pk,
            'name': category.name,
            'slaDays': category.sla_days,
        },
        'currentHolder': officer_summary(application.current_holder),
        'applicationDetails': application.application_details,
        'isOverdue': application.is_overdue(now),
        'createdAt': application.created_at,
        'submittedAt': application.submitted_at,
        'validatedAt': application.validated_at,
        'completedAt': application.completed_at,
        'updatedAt': application.updated_at,
    }


def serialize_document(document):
    return {
        'id': document.pk,
        'documentType': document.document_type,
        'fileName': document.file_name,
        'fileUrl': document.file_url,
        'fileSize': document.file_size,
        'contentType': document.content_type,
        'isVerified': document.is_verified,
        'verifiedById': document.verified_by_id,
        'verifiedAt': document.verified_at,
        'verificationNotes': document.verification_notes,
        'createdAt': document.created_at,
    }


def serialize_workflow_entry(entry):
    return {
        'id': entry.pk,
        'applicationId': str(entry.application_id),
        'fromStatus': entry.from_status,
        'toStatus': entry.to_status,
        'changedById': entry.changed_by_id,
        'changedByName': entry.changed_by.display_name if entry.changed_by else None,
        'comments': entry.comments,
        'createdAt': entry.created_at,
    }


def serialize_assignment(assignment):
    return {
        'id': assignment.pk,
        'assignedById': assignment.assigned_by_id,
        'assignedTo': officer_summary(assignment.assigned_to),
        'priority': assignment.priority,
        'instructions': assignment.instructions,
        'expectedCompletionDate': assignment.expected_completion_date,
        'createdAt': assignment.created_at,
    }


def serialize_application_detail(application, now=None):
    data = serialize_application(application, now)
    validation = getattr(application, 'validation', None)
    data.update({
        'documents': [serialize_document(d) for d in application.documents.all()],
        'workflow': [serialize_workflow_entry(w) for w in application.workflow.all()],
        'officerAssignments': [serialize_assignment(a) for a in application.officer_assignments.all()],
        'validation': {
            'rrNumber': validation.rr_number,
            'validatedById': validation.validated_by_id,
            'isDocumentsComplete': validation.is_documents_complete,
            'isEligibilityVerified': validation.is_eligibility_verified,
            'validationNotes': validation.validation_notes,
            'createdAt': validation.created_at,
        } if validation else None,
    })
    return data
