from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.paginator import Paginator
from django.db.models import Q
from django.utils import timezone

from accounts.models import User
from .exceptions import NotFound
from .models import Application

Status = Application.Status


def paginate(queryset, page, limit=None):
    """
    Slice `queryset` with Django's Paginator. Out-of-range pages fall back
    to the last page. Returns the page and its pagination summary.
    """
    paginator = Paginator(queryset, limit or settings.PORTAL_PAGE_SIZE)
    page_obj = paginator.get_page(page)
    return page_obj, {
        'page': page_obj.number,
        'limit': paginator.per_page,
        'total': paginator.count,
        'pages': paginator.num_pages,
    }


def visible_applications(user):
    """
    Applications `user` may see:
    citizens their own, officers what they hold, front desk and admins everything.
    """
    queryset = Application.objects.select_related(
        'citizen', 'citizen__citizen_profile', 'service_category',
        'current_holder', 'current_holder__officer_profile',
    )
    if user.role == User.Role.CITIZEN:
        return queryset.filter(citizen=user)
    if user.is_officer:
        return queryset.filter(current_holder=user)
    if user.role == User.Role.FRONT_DESK or user.is_admin_role:
        return queryset
    return queryset.none()


def list_applications(user, status=None, assigned_to_me=False, search=None, page=1, limit=None):
    queryset = visible_applications(user)
    if status:
        queryset = queryset.filter(status=status)
    if assigned_to_me:
        queryset = queryset.filter(current_holder=user)
    if search:
        queryset = queryset.filter(
            Q(rr_number__icontains=search)
            | Q(citizen__citizen_profile__full_name__icontains=search)
            | Q(service_category__name__icontains=search)
        )

    page_obj, pagination = paginate(queryset.order_by('-created_at'), page, limit)
    return {
        'applications': list(page_obj),
        'pagination': pagination,
    }


def get_application(user, application_id):
    """
    One application with its history. Citizens only ever see their own;
    anyone else's comes back as NotFound.
    """
    queryset = Application.objects.select_related(
        'citizen', 'citizen__citizen_profile', 'service_category',
        'current_holder', 'current_holder__officer_profile',
    ).prefetch_related('documents', 'workflow__changed_by', 'officer_assignments__assigned_to')

    if user.role == User.Role.CITIZEN:
        queryset = queryset.filter(citizen=user)
    try:
        return queryset.get(pk=application_id)
    except (Application.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound("Application not found")


def get_application_stats(queryset=None, now=None):
    """
    Counts for dashboards. Overdue is recomputed against `now` on every call.
    """
    now = now or timezone.now()
    if queryset is None:
        queryset = Application.objects.all()

    total = queryset.count()
    pending = queryset.filter(status=Status.PENDING).count()
    in_progress = queryset.filter(status=Status.IN_PROGRESS).count()
    completed = queryset.filter(status__in=(Status.APPROVED, Status.COMPLETED)).count()

    open_validated = queryset.filter(
        status__in=(Status.VALIDATED, Status.IN_PROGRESS),
        validated_at__isnull=False,
        completed_at__isnull=True,
    ).select_related('service_category')
    overdue = sum(1 for application in open_validated if application.is_overdue(now))

    return {
        'total': total,
        'pending': pending,
        'inProgress': in_progress,
        'completed': completed,
        'overdue': overdue,
    }
