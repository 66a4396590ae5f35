"""Services for Resources app - Catalogue management."""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db.models import Q

from .models import Resource, ResourceStatus, PricingModel, PricingUnit
from .dtos import ResourceDTO, ResourceData
from . import pricing

logger = logging.getLogger(__name__)


# =============================================================================
# Validation
# =============================================================================

def normalize_resource_data(data: ResourceData) -> dict:
    """
    Validate resource input and return model field values.

    Per-unit pricing requires a unit; flat-fee pricing clears it.
    Raises ValueError on invalid input.
    """
    if data.pricing_model not in PricingModel.values:
        raise ValueError(f"Unknown pricing model: {data.pricing_model}")

    pricing_unit = data.pricing_unit or None
    if data.pricing_model == PricingModel.PER_UNIT:
        if not pricing_unit:
            raise ValueError("Per-unit pricing requires a pricing unit.")
        if pricing_unit not in PricingUnit.values:
            raise ValueError(f"Unknown pricing unit: {pricing_unit}")
    else:
        pricing_unit = None

    rate = Decimal(str(data.rate))
    if rate < 0:
        raise ValueError("Rate cannot be negative.")
    if data.max_reservation_days is not None and data.max_reservation_days < 0:
        raise ValueError("Maximum reservation days cannot be negative.")
    if data.advance_booking_days is not None and data.advance_booking_days < 0:
        raise ValueError("Advance booking days cannot be negative.")

    return {
        'name': data.name.strip(),
        'resource_type': data.resource_type,
        'description': data.description or "",
        'pricing_model': data.pricing_model,
        'pricing_unit': pricing_unit,
        'rate': pricing.quantize_money(rate),
        'requires_approval': data.requires_approval,
        'max_reservation_days': data.max_reservation_days,
        'advance_booking_days': data.advance_booking_days,
    }


# =============================================================================
# Resource CRUD Services
# =============================================================================

def get_resource_dto(resource_id: UUID) -> Optional[ResourceDTO]:
    """Get resource DTO by ID."""
    try:
        resource = Resource.objects.get(id=resource_id)
        return _resource_to_dto(resource)
    except Resource.DoesNotExist:
        return None


def list_resources(
    include_inactive: bool = False,
    search: Optional[str] = None,
    resource_type: Optional[str] = None,
) -> List[ResourceDTO]:
    """
    List resources for the catalogue.
    Members only see reservable (active) resources.
    """
    queryset = Resource.objects.all()
    if not include_inactive:
        queryset = queryset.filter(status=ResourceStatus.ACTIVE)

    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(description__icontains=search)
        )

    if resource_type:
        queryset = queryset.filter(resource_type=resource_type)

    return [_resource_to_dto(r) for r in queryset]


def create_resource(data: ResourceData, created_by_id: Optional[UUID] = None) -> ResourceDTO:
    """Create a new resource."""
    resource = Resource.objects.create(
        created_by_id=created_by_id,
        **normalize_resource_data(data),
    )
    logger.info(f"Created resource {resource.id} ({resource.name})")
    return _resource_to_dto(resource)


def update_resource(resource_id: UUID, data: ResourceData) -> Optional[ResourceDTO]:
    """Update resource fields (status is changed through the transitions below)."""
    try:
        resource = Resource.objects.get(id=resource_id)
    except Resource.DoesNotExist:
        return None

    for field, value in normalize_resource_data(data).items():
        setattr(resource, field, value)
    resource.save()
    return _resource_to_dto(resource)


# =============================================================================
# Status Transitions
# =============================================================================

def _set_status(resource_id: UUID, status: str) -> Optional[ResourceDTO]:
    try:
        resource = Resource.objects.get(id=resource_id)
    except Resource.DoesNotExist:
        return None

    resource.status = status
    resource.save(update_fields=['status', 'updated_at'])
    logger.info(f"Resource {resource_id} is now {status}")
    return _resource_to_dto(resource)


def activate_resource(resource_id: UUID) -> Optional[ResourceDTO]:
    return _set_status(resource_id, ResourceStatus.ACTIVE)


def deactivate_resource(resource_id: UUID) -> Optional[ResourceDTO]:
    return _set_status(resource_id, ResourceStatus.INACTIVE)


def mark_maintenance(resource_id: UUID) -> Optional[ResourceDTO]:
    """Take a resource out of service; existing reservations are kept."""
    return _set_status(resource_id, ResourceStatus.MAINTENANCE)


# =============================================================================
# Helper Functions
# =============================================================================

def _resource_to_dto(resource: Resource) -> ResourceDTO:
    """Convert Resource model to DTO."""
    return ResourceDTO(
        id=resource.id,
        name=resource.name,
        description=resource.description,
        resource_type=resource.resource_type,
        status=resource.status,
        pricing_model=resource.pricing_model,
        pricing_unit=resource.pricing_unit,
        rate=resource.rate,
        requires_approval=resource.requires_approval,
        max_reservation_days=resource.max_reservation_days,
        advance_booking_days=resource.advance_booking_days,
        formatted_price=pricing.format_price(resource),
        can_be_reserved=resource.can_be_reserved,
        created_at=resource.created_at,
    )
