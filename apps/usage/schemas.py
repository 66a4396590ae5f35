"""API Schemas for Usage app."""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from ninja import Schema


class CheckOutIn(Schema):
    reservation_id: UUID
    start_reading: Optional[Decimal] = None
    start_photo_path: str = ""
    notes: str = ""


class CheckInIn(Schema):
    end_reading: Optional[Decimal] = None
    end_photo_path: str = ""
    notes: str = ""


class VerificationIn(Schema):
    admin_notes: str = ""


class DisputeIn(Schema):
    admin_notes: str


class UsageLogOut(Schema):
    id: UUID
    reservation_id: UUID
    user_id: UUID
    resource_id: UUID
    resource_name: str
    status: str
    checked_out_at: datetime
    checked_in_at: Optional[datetime] = None
    start_reading: Optional[Decimal] = None
    end_reading: Optional[Decimal] = None
    start_photo_path: str = ""
    end_photo_path: str = ""
    start_notes: str = ""
    end_notes: str = ""
    duration_hours: Optional[Decimal] = None
    distance_units: Optional[Decimal] = None
    calculated_cost: Optional[Decimal] = None
    formatted_duration: Optional[str] = None
    formatted_distance: Optional[str] = None
    verified_at: Optional[datetime] = None
    admin_notes: str = ""
    is_billable: bool
