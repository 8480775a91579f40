from datetime import datetime, time

from django.db import transaction
from django.utils import timezone

from .models import Application, DailyRRCounter


def day_bounds(now):
    """Aware start/end of the local day containing `now`."""
    today = timezone.localtime(now).date()
    start_of_day = timezone.make_aware(datetime.combine(today, time.min))
    end_of_day = timezone.make_aware(datetime.combine(today, time.max))
    return today, start_of_day, end_of_day


def format_rr_number(now, sequence):
    local = timezone.localtime(now)
    return f"RR{local:%y}{local:%m}{sequence:04d}"


def generate_rr_number(now=None):
    """
    RR + YY + MM + 4-digit daily sequence.

    The sequence is the number of applications already validated today plus
    one. A per-day counter row is locked while it is incremented so concurrent
    validations cannot draw the same number; the row is seeded from the
    validated count the first time a day is seen.
    """
    now = now or timezone.now()
    today, start_of_day, end_of_day = day_bounds(now)

    with transaction.atomic():
        counter = DailyRRCounter.objects.select_for_update().filter(date=today).first()
        if counter is None:
            already_validated = Application.objects.filter(
                validated_at__range=(start_of_day, end_of_day),
                rr_number__isnull=False,
            ).count()
            counter, _ = DailyRRCounter.objects.get_or_create(
                date=today,
                defaults={'last_seq': already_validated},
            )
            counter = DailyRRCounter.objects.select_for_update().get(pk=counter.pk)

        counter.last_seq += 1
        counter.save(update_fields=['last_seq'])

    return format_rr_number(now, counter.last_seq)
