from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min)


def end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max)


def month_bounds(reference: datetime) -> tuple[datetime, datetime]:
    """First and last instant of the calendar month containing ``reference``."""
    start = datetime(reference.year, reference.month, 1)
    if reference.month == 12:
        next_month = datetime(reference.year + 1, 1, 1)
    else:
        next_month = datetime(reference.year, reference.month + 1, 1)
    return start, next_month - timedelta(microseconds=1)


def local_now(utc_offset_hours: int) -> datetime:
    """Naive wall-clock time at the business location."""
    return utcnow() + timedelta(hours=utc_offset_hours)
