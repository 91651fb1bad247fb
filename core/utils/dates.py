from datetime import timezone as dt_timezone

from django.utils import timezone


def aware(value):
    """Naive datetimes are read as UTC."""
    if value is not None and timezone.is_naive(value):
        return timezone.make_aware(value, dt_timezone.utc)
    return value


def now_or(value=None):
    return aware(value) if value is not None else timezone.now()
