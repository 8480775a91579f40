"""
Role gate for workflow actions.

TRANSITIONS maps (from_status, action) to the roles that may perform it and
the status it lands in. Anything missing from the table is illegal for every
role, admins included. Admins skip role, ownership and holder checks only;
correcting a closed application goes through check_override instead.
"""
from accounts.models import User

from .exceptions import Forbidden, InvalidTransition, Unauthorized, ValidationError
from .models import Application

Status = Application.Status
Role = User.Role

SUBMIT = 'submit'
VALIDATE = 'validate'
PROCESS = 'process'
APPROVE = 'approve'
REJECT = 'reject'
FORWARD = 'forward'

ACTIONS = (SUBMIT, VALIDATE, PROCESS, APPROVE, REJECT, FORWARD)

OFFICERS = frozenset(User.OFFICER_ROLES)

# (from_status, action) -> (allowed roles, to_status)
# to_status None means the status is unchanged (holder reassignment).
TRANSITIONS = {
    (Status.DRAFT, SUBMIT): (frozenset({Role.CITIZEN}), Status.PENDING),
    (Status.PENDING, VALIDATE): (frozenset({Role.FRONT_DESK}), Status.VALIDATED),
    (Status.PENDING, REJECT): (frozenset({Role.FRONT_DESK}), Status.REJECTED),
    (Status.VALIDATED, PROCESS): (OFFICERS, Status.IN_PROGRESS),
    (Status.VALIDATED, REJECT): (OFFICERS | {Role.FRONT_DESK}, Status.REJECTED),
    (Status.IN_PROGRESS, APPROVE): (OFFICERS, Status.APPROVED),
    (Status.IN_PROGRESS, REJECT): (OFFICERS | {Role.FRONT_DESK}, Status.REJECTED),
    (Status.VALIDATED, FORWARD): (OFFICERS, None),
    (Status.IN_PROGRESS, FORWARD): (OFFICERS, None),
}

# Actions an officer may only take on applications they currently hold.
HOLDER_ONLY_ACTIONS = frozenset({PROCESS, APPROVE, REJECT, FORWARD})


def roles_for_action(action):
    roles = set()
    for (_, table_action), (allowed, _) in TRANSITIONS.items():
        if table_action == action:
            roles |= allowed
    return roles


def target_status(status, action):
    """Status the action lands in, or raise InvalidTransition."""
    entry = TRANSITIONS.get((status, action))
    if entry is None:
        raise InvalidTransition(
            f"Cannot {action} an application in {status} status"
        )
    to_status = entry[1]
    return status if to_status is None else to_status


def is_allowed(status, action, role):
    """Pure lookup: may `role` perform `action` from `status`?"""
    if role in User.ADMIN_ROLES:
        return (status, action) in TRANSITIONS
    entry = TRANSITIONS.get((status, action))
    return entry is not None and role in entry[0]


def check_transition(application, actor, action):
    """
    Raise the matching workflow error if `actor` may not perform `action`
    on `application` in its current state. Returns the target status.
    """
    if actor is None or not actor.is_authenticated or not actor.is_active:
        raise Unauthorized()

    is_admin = actor.role in User.ADMIN_ROLES

    if not is_admin and actor.role not in roles_for_action(action):
        raise Forbidden(f"Your role cannot {action} applications")

    to_status = target_status(application.status, action)

    if is_admin:
        return to_status

    if not is_allowed(application.status, action, actor.role):
        raise Forbidden(
            f"Your role cannot {action} an application in {application.status} status"
        )

    if action == SUBMIT and application.citizen_id != actor.pk:
        raise Forbidden("You can only submit your own applications")

    if action in HOLDER_ONLY_ACTIONS and actor.role in OFFICERS:
        if application.current_holder_id != actor.pk:
            raise Forbidden("Only the officer currently holding this application can do that")

    return to_status


# Statuses that only make sense once front desk has issued an RR number.
NEEDS_RR_NUMBER = frozenset({Status.VALIDATED, Status.IN_PROGRESS, Status.APPROVED, Status.COMPLETED})


def check_override(application, actor, to_status):
    """
    Admin correction: move `application` to any status, terminal ones
    included, as long as the status fits what the application has been through.
    """
    if actor is None or not actor.is_authenticated or not actor.is_active:
        raise Unauthorized()
    if actor.role not in User.ADMIN_ROLES:
        raise Forbidden("Only administrators can override an application's status")
    if to_status not in Status.values:
        raise ValidationError(f"Unknown status {to_status}")
    if to_status == application.status:
        raise InvalidTransition(f"Application is already in {to_status} status")
    if to_status == Status.DRAFT:
        raise InvalidTransition("An application cannot be returned to draft")
    if to_status == Status.PENDING and not application.submitted_at:
        raise InvalidTransition("Cannot move an application to PENDING before it has been submitted")
    if to_status in NEEDS_RR_NUMBER and not application.rr_number:
        raise InvalidTransition(f"Cannot move an application to {to_status} before it has been validated")
    return to_status
