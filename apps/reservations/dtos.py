"""DTOs for Reservations app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime


@dataclass(frozen=True)
class ReservationDTO:
    """Reservation data."""
    id: UUID
    resource_id: UUID
    resource_name: str
    user_id: UUID
    starts_at: datetime
    ends_at: datetime
    status: str
    notes: str
    admin_notes: str
    duration_hours: Decimal
    formatted_duration: str
    confirmed_at: Optional[datetime]
    confirmed_by_id: Optional[UUID]
    cancelled_at: Optional[datetime]
    cancelled_by_id: Optional[UUID]
    cancellation_reason: str
    created_at: datetime


@dataclass(frozen=True)
class CalendarDayDTO:
    """
    One cell of a resource availability calendar.
    Derived on demand from blocking reservations; never stored.
    """
    date: date
    is_current_month: bool
    is_past: bool
    is_today: bool
    has_reservations: bool
    reservation_count: int
    has_multi_day: bool
    is_multi_day_start: bool
    is_multi_day_middle: bool
    is_multi_day_end: bool
