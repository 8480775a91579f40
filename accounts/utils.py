from .models import User


def get_client_ip(request):
    """
    Best-effort caller address for audit rows.
    Proxy headers win over the socket address.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    x_real_ip = request.META.get('HTTP_X_REAL_IP')
    if x_real_ip:
        return x_real_ip.strip()
    return request.META.get('REMOTE_ADDR') or None


def get_available_officers(exclude=None):
    """
    Active officers flagged available for new work.
    """
    officers = User.objects.filter(
        role__in=User.OFFICER_ROLES,
        is_active=True,
        officer_profile__is_available=True,
    ).select_related('officer_profile').order_by('officer_profile__full_name')

    if exclude is not None:
        officers = officers.exclude(pk=exclude.pk)
    return officers


def is_eligible_officer(user):
    if user is None or not user.is_active or not user.is_officer:
        return False
    profile = getattr(user, 'officer_profile', None)
    return bool(profile and profile.is_available)
