"""
Availability checks for resources.

A reservation blocks its resource while PENDING, CONFIRMED or CHECKED_OUT.
Windows are half-open: [starts_at, ends_at). Two windows overlap iff
existing.starts_at < ends_at and existing.ends_at > starts_at, so
back-to-back bookings never conflict.
"""
import calendar
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from apps.resources.pricing import local_date

from .models import Reservation, BLOCKING_STATUSES
from .dtos import ReservationDTO, CalendarDayDTO


def blocking_queryset(resource_id: UUID, range_start: datetime, range_end: datetime) -> QuerySet:
    """Blocking reservations on a resource that intersect [range_start, range_end)."""
    return Reservation.objects.filter(
        resource_id=resource_id,
        status__in=BLOCKING_STATUSES,
        starts_at__lt=range_end,
        ends_at__gt=range_start,
    )


def is_slot_available(
    resource_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
    exclude_reservation_id: Optional[UUID] = None,
) -> bool:
    """Check that no blocking reservation overlaps the window."""
    queryset = blocking_queryset(resource_id, starts_at, ends_at)
    if exclude_reservation_id:
        queryset = queryset.exclude(id=exclude_reservation_id)
    return not queryset.exists()


def get_blocking_for_resource(
    resource_id: UUID,
    range_start: datetime,
    range_end: datetime,
) -> List[ReservationDTO]:
    """Blocking reservations intersecting the range, ascending by start."""
    from .services import _reservation_to_dto, _resource_names

    reservations = list(
        blocking_queryset(resource_id, range_start, range_end).order_by('starts_at', 'id')
    )
    names = _resource_names(reservations)
    return [_reservation_to_dto(r, names.get(r.resource_id, "")) for r in reservations]


# =============================================================================
# Calendar
# =============================================================================

def _start_of_day(day: date) -> datetime:
    value = datetime.combine(day, time.min)
    return timezone.make_aware(value) if settings.USE_TZ else value


def build_calendar_month(
    resource_id: UUID,
    year: int,
    month: int,
    today: Optional[date] = None,
) -> List[List[CalendarDayDTO]]:
    """
    Weeks (Monday first) covering the month, with per-day booking flags.

    A reservation is shown on every calendar day from the day it starts
    through the day it ends, including partial days at either end.
    """
    today = today or timezone.localdate()
    first_of_month = date(year, month, 1)
    last_of_month = date(year, month, calendar.monthrange(year, month)[1])
    grid_start = first_of_month - timedelta(days=first_of_month.weekday())
    grid_end = last_of_month + timedelta(days=6 - last_of_month.weekday())

    reservations = get_blocking_for_resource(
        resource_id,
        _start_of_day(grid_start),
        _start_of_day(grid_end + timedelta(days=1)),
    )
    spans = [(local_date(r.starts_at), local_date(r.ends_at)) for r in reservations]

    weeks: List[List[CalendarDayDTO]] = []
    day = grid_start
    while day <= grid_end:
        week = []
        for _ in range(7):
            week.append(_calendar_day(day, first_of_month, today, spans))
            day += timedelta(days=1)
        weeks.append(week)
    return weeks


def _calendar_day(day: date, first_of_month: date, today: date, spans) -> CalendarDayDTO:
    touching = [(first, last) for first, last in spans if first <= day <= last]
    multi_day = [(first, last) for first, last in touching if first != last]

    return CalendarDayDTO(
        date=day,
        is_current_month=(day.month == first_of_month.month and day.year == first_of_month.year),
        is_past=day < today,
        is_today=day == today,
        has_reservations=bool(touching),
        reservation_count=len(touching),
        has_multi_day=bool(multi_day),
        is_multi_day_start=any(first == day for first, _ in multi_day),
        is_multi_day_middle=any(first < day < last for first, last in multi_day),
        is_multi_day_end=any(last == day for _, last in multi_day),
    )
