"""
Application lifecycle operations.

Each public function runs one transition through workflow.run_transition:
re-read under lock, precondition checks, mutation, workflow row, audit row,
then notifications once the transaction has closed.
"""
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from accounts.models import User
from accounts.utils import is_eligible_officer
from notifications.models import Notification
from notifications.services import dispatch_notifications
from routing import services as routing_services
from routing.models import OfficerAssignment

from . import permissions
from .exceptions import Forbidden, NotFound, ServerError, ValidationError, WorkflowError
from .models import Application, ApplicationValidation, Document, ServiceCategory
from .rr_numbers import generate_rr_number
from .storage import discard, store, validate_upload
from .workflow import (
    STATUS_MESSAGES, TransitionResult, change_status, ensure_actor, record_audit,
    record_transition, run_transition,
)

logger = logging.getLogger(__name__)

Status = Application.Status


# --- Creation ---

def _find(queryset, pk):
    try:
        return queryset.filter(pk=pk).first()
    except (ValueError, TypeError):
        return None


def create_application(actor, service_category_id, preferred_officer_id, application_details, documents,
                       ip_address=None, now=None):
    """
    Citizen creates a DRAFT application.
    `documents` is a list of (uploaded_file, document_type) pairs; at least one.
    """
    ensure_actor(actor)
    if actor.role != User.Role.CITIZEN:
        raise Forbidden("Only citizens can create applications")
    if not documents:
        raise ValidationError("At least one document is required")

    service_category = _find(ServiceCategory.objects.all(), service_category_id)
    if service_category is None:
        raise NotFound("Service category not found")
    if not service_category.is_active:
        raise ValidationError("Service category is not accepting applications")

    officer = _find(User.objects.select_related('officer_profile'), preferred_officer_id)
    if officer is None:
        raise NotFound("Preferred officer not found")
    if not is_eligible_officer(officer):
        raise ValidationError("Invalid or unavailable officer")

    for upload, _ in documents:
        validate_upload(upload)

    now = now or timezone.now()
    saved_paths = []
    try:
        with transaction.atomic():
            application = Application.objects.create(
                citizen=actor,
                service_category=service_category,
                application_details=application_details or '',
                status=Status.DRAFT,
            )
            for upload, document_type in documents:
                Document.objects.create(
                    application=application,
                    document_type=document_type or Document.DocumentType.OTHER,
                    file_name=upload.name,
                    file_url=store(upload, application, saved_paths),
                    file_size=upload.size,
                    content_type=getattr(upload, 'content_type', '') or '',
                    uploaded_by=actor,
                )

            record_transition(application, None, Status.DRAFT, actor, application_details, now)
            routing_services.record_assignment(
                application,
                assigned_by=actor,
                assigned_to=officer,
                now=now,
                priority=OfficerAssignment.Priority.MEDIUM,
                instructions=application_details,
            )
            record_audit(
                application, 'APPLICATION_CREATED', actor, None,
                {
                    'serviceCategoryId': service_category.pk,
                    'preferredOfficerId': officer.pk,
                    'status': Status.DRAFT,
                    'documentCount': len(documents),
                },
                ip_address, now,
            )
    except Exception as exc:
        # Rows are rolled back; the files already written are not.
        discard(saved_paths)
        if isinstance(exc, DatabaseError):
            logger.exception("Failed to create application for citizen %s", actor.pk)
            raise ServerError("Failed to create application") from exc
        raise

    result = TransitionResult(application=application)
    result.notify(
        actor.pk,
        Notification.Type.APPLICATION_SUBMITTED,
        "Application Created Successfully",
        f"Your application for {service_category.name} has been created and is now in draft status.",
    )
    result.notify(
        officer.pk,
        Notification.Type.APPLICATION_SUBMITTED,
        "New Application Assigned",
        f"A new application for {service_category.name} has been assigned to you.",
    )
    dispatch_notifications(result.notifications)
    return result


# --- Transition steps ---

def _submit(application, actor, now, ip_address=None):
    to_status = permissions.check_transition(application, actor, permissions.SUBMIT)
    if not application.documents.exists():
        raise ValidationError("Application must have at least one document")

    from_status = application.status
    change_status(application, to_status, submitted_at=now)
    record_transition(application, from_status, to_status, actor,
                      "Application submitted for front desk validation", now)
    record_audit(application, 'APPLICATION_SUBMITTED', actor,
                 {'status': from_status}, {'status': to_status, 'submittedAt': now}, ip_address, now)

    category = application.service_category.name
    result = TransitionResult(application=application)
    result.notify(
        application.citizen_id,
        Notification.Type.APPLICATION_SUBMITTED,
        "Application Submitted Successfully",
        f"Your application for {category} has been submitted and is now pending validation.",
    )
    citizen_name = application.citizen.display_name
    front_desk = User.objects.filter(role=User.Role.FRONT_DESK, is_active=True).values_list('pk', flat=True)
    for user_id in front_desk:
        result.notify(
            user_id,
            Notification.Type.APPLICATION_SUBMITTED,
            "New Application for Validation",
            f"Application for {category} submitted by {citizen_name} is pending validation.",
        )
    return result


def _reject(application, actor, now, reason, ip_address=None, action='APPLICATION_REJECTED'):
    from_status = application.status
    change_status(application, Status.REJECTED)
    record_transition(application, from_status, Status.REJECTED, actor, reason, now)
    record_audit(application, action, actor,
                 {'status': from_status}, {'status': Status.REJECTED, 'reason': reason}, ip_address, now)

    result = TransitionResult(application=application)
    result.notify_citizen(
        "Application Rejected",
        f"Your application {application.reference} for {application.service_category.name} "
        f"has been rejected. Reason: {reason}",
    )
    return result


def _validate(application, actor, now, is_documents_complete=True, is_eligibility_verified=True,
              validation_notes='', should_reject=False, rejection_reason='', comments='', ip_address=None):
    to_status = permissions.check_transition(application, actor, permissions.VALIDATE)

    if should_reject:
        reason = (rejection_reason or '').strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        return _reject(application, actor, now, reason, ip_address=ip_address)

    from_status = application.status
    rr_number = application.rr_number or generate_rr_number(now)
    assignment = routing_services.seed_holder_on_validation(application, now)
    change_status(application, to_status, rr_number=rr_number, validated_at=now)

    ApplicationValidation.objects.create(
        application=application,
        validated_by=actor,
        rr_number=rr_number,
        is_documents_complete=is_documents_complete,
        is_eligibility_verified=is_eligibility_verified,
        validation_notes=validation_notes or comments or "Application validated by front desk",
        created_at=now,
    )
    record_transition(application, from_status, to_status, actor,
                      comments or f"Application validated and assigned RR Number: {rr_number}", now)
    record_audit(
        application, 'APPLICATION_VALIDATED', actor,
        {'status': from_status},
        {'status': to_status, 'rrNumber': rr_number, 'currentHolderId': application.current_holder_id},
        ip_address, now,
    )

    result = TransitionResult(application=application, rr_number=rr_number, assignment=assignment)
    officer = application.current_holder
    officer_name = officer.display_name if officer else "the assigned officer"
    result.notify_citizen(
        "Application Validated",
        f"Your application has been validated and assigned RR Number: {rr_number}. "
        f"It has been forwarded to {officer_name}.",
    )
    if officer:
        result.notify(
            officer.pk,
            Notification.Type.APPLICATION_ASSIGNED,
            "Application Assigned for Processing",
            f"Application {rr_number} for {application.service_category.name} "
            "has been assigned to you for processing.",
        )
    return result


def _process(application, actor, now, comments='', ip_address=None):
    to_status = permissions.check_transition(application, actor, permissions.PROCESS)

    from_status = application.status
    change_status(application, to_status)
    record_transition(application, from_status, to_status, actor,
                      comments or "Application processing started", now)
    record_audit(application, 'PROCESSING_STARTED', actor,
                 {'status': from_status}, {'status': to_status}, ip_address, now)

    result = TransitionResult(application=application)
    result.notify_citizen(
        "Application Processing Started",
        f"Your application {application.reference} is now being processed by {actor.display_name}.",
    )
    return result


def _approve(application, actor, now, comments='', ip_address=None):
    to_status = permissions.check_transition(application, actor, permissions.APPROVE)

    from_status = application.status
    change_status(application, to_status, completed_at=now)
    record_transition(application, from_status, to_status, actor, comments or "Application approved", now)
    record_audit(application, 'APPLICATION_APPROVED', actor,
                 {'status': from_status}, {'status': to_status, 'completedAt': now}, ip_address, now)

    result = TransitionResult(application=application)
    result.notify_citizen(
        "Application Approved",
        f"{STATUS_MESSAGES[to_status]} Application: {application.reference} "
        f"for {application.service_category.name}.",
    )
    return result


def _reject_step(application, actor, now, rejection_reason='', comments='', ip_address=None):
    permissions.check_transition(application, actor, permissions.REJECT)
    reason = (rejection_reason or comments or '').strip()
    if not reason:
        raise ValidationError("A rejection reason is required")
    return _reject(application, actor, now, reason, ip_address=ip_address)


def _override(application, actor, now, to_status=None, comments='', ip_address=None):
    to_status = permissions.check_override(application, actor, to_status)
    reason = (comments or '').strip()
    if not reason:
        raise ValidationError("A reason is required to override an application's status")

    from_status = application.status
    old_values = {
        'status': from_status,
        'currentHolderId': application.current_holder_id,
        'completedAt': application.completed_at,
    }

    fields = {'completed_at': now if to_status in (Status.APPROVED, Status.COMPLETED) else None}
    if to_status == Status.PENDING:
        # Back in the front desk queue; validation seeds the holder again.
        fields['current_holder'] = None
    elif application.current_holder_id is None:
        assignment = routing_services.latest_assignment(application)
        if assignment is not None:
            fields['current_holder'] = assignment.assigned_to
    change_status(application, to_status, **fields)

    record_transition(application, from_status, to_status, actor,
                      f"Status overridden by administrator: {reason}", now)
    record_audit(
        application, 'ADMIN_STATUS_OVERRIDE', actor, old_values,
        {
            'status': to_status,
            'currentHolderId': application.current_holder_id,
            'completedAt': application.completed_at,
            'reason': reason,
        },
        ip_address, now,
    )

    result = TransitionResult(application=application)
    result.notify_citizen(
        "Application Status Updated",
        f"{STATUS_MESSAGES[to_status]} Application: {application.reference}. Note: {reason}",
    )
    return result


# --- Public operations ---

def submit_application(application_id, actor, ip_address=None, now=None):
    return run_transition(_submit, application_id, actor, now=now, ip_address=ip_address)


def validate_application(application_id, actor, is_documents_complete=True, is_eligibility_verified=True,
                         validation_notes='', should_reject=False, rejection_reason='', comments='',
                         ip_address=None, now=None):
    return run_transition(
        _validate, application_id, actor, now=now,
        is_documents_complete=is_documents_complete,
        is_eligibility_verified=is_eligibility_verified,
        validation_notes=validation_notes,
        should_reject=should_reject,
        rejection_reason=rejection_reason,
        comments=comments,
        ip_address=ip_address,
    )


def process_application(application_id, actor, comments='', ip_address=None, now=None):
    return run_transition(_process, application_id, actor, now=now, comments=comments, ip_address=ip_address)


def approve_application(application_id, actor, comments='', ip_address=None, now=None):
    return run_transition(_approve, application_id, actor, now=now, comments=comments, ip_address=ip_address)


def reject_application(application_id, actor, rejection_reason='', comments='', ip_address=None, now=None):
    return run_transition(
        _reject_step, application_id, actor, now=now,
        rejection_reason=rejection_reason,
        comments=comments,
        ip_address=ip_address,
    )


def override_status(application_id, actor, to_status, comments='', ip_address=None, now=None):
    """
    Admin-only status correction, terminal statuses included.
    Still one workflow row and one audit row, like any other transition.
    """
    return run_transition(
        _override, application_id, actor, now=now,
        to_status=to_status,
        comments=comments,
        ip_address=ip_address,
    )


def forward_application(application_id, actor, target_officer_id=None, priority=OfficerAssignment.Priority.MEDIUM,
                        instructions='', ip_address=None, now=None):
    return routing_services.forward_application(
        application_id, actor,
        target_officer_id=target_officer_id,
        priority=priority,
        instructions=instructions,
        ip_address=ip_address,
        now=now,
    )


# --- Documents ---

DOCUMENT_VERIFIER_ROLES = (User.Role.FRONT_DESK,) + User.OFFICER_ROLES + User.ADMIN_ROLES


def verify_document(document_id, actor, is_verified=True, notes='', ip_address=None, now=None):
    """
    Flip a document's verification flag. Front desk, the current holder,
    or an admin may do it while the application is still open.
    """
    ensure_actor(actor)
    if actor.role not in DOCUMENT_VERIFIER_ROLES:
        raise Forbidden("Your role cannot verify documents")
    now = now or timezone.now()

    try:
        with transaction.atomic():
            document = Document.objects.select_for_update().select_related('application').filter(
                pk=document_id
            ).first()
            if document is None:
                raise NotFound("Document not found")

            application = document.application
            if application.is_terminal:
                raise ValidationError("Documents of a closed application cannot be changed")
            if actor.is_officer and application.current_holder_id != actor.pk:
                raise Forbidden("Only the officer currently holding this application can verify its documents")

            old_values = {'documentId': document.pk, 'isVerified': document.is_verified}
            document.is_verified = is_verified
            document.verified_by = actor if is_verified else None
            document.verified_at = now if is_verified else None
            document.verification_notes = notes or ''
            document.save()

            record_audit(
                application, 'DOCUMENT_VERIFIED' if is_verified else 'DOCUMENT_UNVERIFIED', actor,
                old_values, {'documentId': document.pk, 'isVerified': is_verified, 'notes': notes or ''},
                ip_address, now,
            )
    except WorkflowError:
        raise
    except DatabaseError as exc:
        logger.exception("Failed to verify document %s", document_id)
        raise ServerError("Failed to update document") from exc

    return document
