"""API Schemas for Resources app - Pydantic/Ninja schemas for request/response validation."""
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from ninja import Schema


class ResourceIn(Schema):
    """Schema for creating/updating a resource."""
    name: str
    resource_type: str = 'OTHER'
    description: str = ""
    pricing_model: str = 'FLAT_FEE'
    pricing_unit: Optional[str] = None
    rate: Decimal = Decimal('0.00')
    requires_approval: bool = False
    max_reservation_days: Optional[int] = None
    advance_booking_days: Optional[int] = None


class ResourceOut(Schema):
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


class CostEstimateOut(Schema):
    cost: Decimal
    label: str
