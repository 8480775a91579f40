from datetime import timedelta

from accounts.models import User
from accounts.utils import is_eligible_officer
from applications import permissions
from applications.exceptions import NotFound, ValidationError
from applications.workflow import (
    TransitionResult, change_status, record_audit, record_transition, run_transition,
)
from notifications.models import Notification
from .models import OfficerAssignment


def expected_completion(application, now):
    return now + timedelta(days=application.service_category.sla_days)


def record_assignment(application, assigned_by, assigned_to, now, priority=OfficerAssignment.Priority.MEDIUM,
                      instructions='', expected_completion_date=None):
    return OfficerAssignment.objects.create(
        application=application,
        assigned_by=assigned_by,
        assigned_to=assigned_to,
        priority=priority,
        instructions=instructions or '',
        expected_completion_date=expected_completion_date,
        created_at=now,
    )


def latest_assignment(application):
    return application.officer_assignments.select_related(
        'assigned_to', 'assigned_to__officer_profile'
    ).order_by('-created_at', '-id').first()


def assignment_chain(application):
    """Forwarding history, oldest first."""
    return application.officer_assignments.select_related(
        'assigned_by', 'assigned_to', 'assigned_to__officer_profile'
    ).order_by('created_at', 'id')


def seed_holder_on_validation(application, now):
    """
    Hands a freshly validated application to the officer the citizen picked.
    The caller saves the application.
    """
    assignment = latest_assignment(application)
    if assignment is None:
        application.current_holder = None
        return None

    assignment.expected_completion_date = expected_completion(application, now)
    assignment.save(update_fields=['expected_completion_date'])
    application.current_holder = assignment.assigned_to
    return assignment


def _forward(application, actor, now, target_officer_id=None, priority=OfficerAssignment.Priority.MEDIUM,
             instructions='', ip_address=None):
    permissions.check_transition(application, actor, permissions.FORWARD)

    if not target_officer_id or not (instructions or '').strip():
        raise ValidationError("Target officer and instructions are required")
    if priority not in OfficerAssignment.Priority.values:
        raise ValidationError("Priority must be 1 (High), 2 (Medium) or 3 (Low)")

    try:
        target = User.objects.select_related('officer_profile').filter(pk=target_officer_id).first()
    except (ValueError, TypeError):
        target = None
    if target is None:
        raise NotFound("Target officer not found")
    if not is_eligible_officer(target):
        raise ValidationError("Invalid or unavailable target officer")
    if target.pk == application.current_holder_id:
        raise ValidationError("Application is already held by this officer")

    previous_holder_id = application.current_holder_id
    assignment = record_assignment(
        application,
        assigned_by=actor,
        assigned_to=target,
        now=now,
        priority=priority,
        instructions=instructions,
        expected_completion_date=expected_completion(application, now),
    )
    change_status(application, application.status, current_holder=target)

    officer_name = target.display_name
    record_transition(
        application, application.status, application.status, actor,
        f"Application forwarded to {officer_name} with priority {priority}. Instructions: {instructions}",
        now,
    )
    record_audit(
        application, 'APPLICATION_FORWARDED', actor,
        {'currentHolderId': previous_holder_id},
        {'currentHolderId': target.pk, 'priority': priority, 'assignmentId': assignment.pk},
        ip_address, now,
    )

    result = TransitionResult(application=application, assignment=assignment)
    result.notify(
        target.pk,
        Notification.Type.APPLICATION_ASSIGNED,
        "Application Forwarded to You",
        f"Application {application.reference} for {application.service_category.name} "
        f"has been forwarded to you. Instructions: {instructions}",
    )
    result.notify_citizen(
        "Application Forwarded",
        f"Your application {application.reference} has been forwarded to {officer_name}.",
    )
    return result


def forward_application(application_id, actor, target_officer_id=None, priority=OfficerAssignment.Priority.MEDIUM,
                        instructions='', ip_address=None, now=None):
    """
    Reassign the current holder without touching status.
    """
    return run_transition(
        _forward, application_id, actor, now=now,
        target_officer_id=target_officer_id,
        priority=priority,
        instructions=instructions,
        ip_address=ip_address,
    )
