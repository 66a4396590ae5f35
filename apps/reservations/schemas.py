"""API Schemas for Reservations app."""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime
from ninja import Schema


class ReservationIn(Schema):
    """Schema for creating a reservation."""
    resource_id: UUID
    starts_at: datetime  # ISO 8601 format
    ends_at: datetime    # ISO 8601 format
    notes: str = ""


class CancellationIn(Schema):
    reason: str = ""


class ReservationOut(Schema):
    id: UUID
    resource_id: UUID
    resource_name: str
    user_id: UUID
    starts_at: datetime
    ends_at: datetime
    status: str
    notes: str
    duration_hours: Decimal
    formatted_duration: str
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: str = ""
    created_at: datetime


class RejectionOut(Schema):
    reason: str
    message: str


class CalendarDayOut(Schema):
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
