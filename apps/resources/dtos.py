"""DTOs for Resources app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime


@dataclass(frozen=True)
class ResourceDTO:
    """Resource data for cross-app communication (pricing functions accept it)."""
    id: UUID
    name: str
    description: str
    resource_type: str
    status: str
    pricing_model: str
    pricing_unit: Optional[str]
    rate: Decimal
    requires_approval: bool
    max_reservation_days: Optional[int]
    advance_booking_days: Optional[int]
    formatted_price: str
    can_be_reserved: bool
    created_at: datetime


@dataclass(frozen=True)
class ResourceData:
    """Input for creating or updating a resource."""
    name: str
    resource_type: str = 'OTHER'
    description: str = ""
    pricing_model: str = 'FLAT_FEE'
    pricing_unit: Optional[str] = None
    rate: Decimal = Decimal('0.00')
    requires_approval: bool = False
    max_reservation_days: Optional[int] = None
    advance_booking_days: Optional[int] = None
