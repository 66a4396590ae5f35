"""DTOs for Usage app."""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime


@dataclass(frozen=True)
class UsageLogDTO:
    """Usage log data for cross-app communication."""
    id: UUID
    reservation_id: UUID
    user_id: UUID
    resource_id: UUID
    resource_name: str
    status: str
    checked_out_at: datetime
    checked_in_at: Optional[datetime]
    start_reading: Optional[Decimal]
    end_reading: Optional[Decimal]
    start_photo_path: str
    end_photo_path: str
    start_notes: str
    end_notes: str
    duration_hours: Optional[Decimal]
    distance_units: Optional[Decimal]
    calculated_cost: Optional[Decimal]
    formatted_duration: Optional[str]
    formatted_distance: Optional[str]
    verified_by_id: Optional[UUID]
    verified_at: Optional[datetime]
    admin_notes: str
    is_billable: bool
