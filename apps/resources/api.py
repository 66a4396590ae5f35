"""API Router for Resources app."""
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.identity.permissions import Permissions, get_user_permissions

from . import services, pricing
from .dtos import ResourceData
from .schemas import ResourceIn, ResourceOut, CostEstimateOut

router = Router(tags=["Resources"])


# =============================================================================
# Helper Functions
# =============================================================================

def require_auth(request: HttpRequest):
    """Require authenticated user."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Unauthorized")


def require_permission(request: HttpRequest, permission: str):
    """Require specific permission."""
    require_auth(request)
    if permission not in get_user_permissions(request.user):
        raise HttpError(403, f"Permission denied: {permission}")


def _get_or_404(resource_id: UUID):
    resource = services.get_resource_dto(resource_id)
    if not resource:
        raise HttpError(404, "Resource not found")
    return resource


# =============================================================================
# Catalogue Endpoints
# =============================================================================

@router.get("/", response=List[ResourceOut])
def list_resources(
    request: HttpRequest,
    search: Optional[str] = None,
    resource_type: Optional[str] = None,
    include_inactive: bool = False,
):
    """List resources. Inactive resources are visible to managers only."""
    require_permission(request, Permissions.RESOURCE_VIEW)
    if include_inactive:
        require_permission(request, Permissions.RESOURCE_MANAGE)
    resources = services.list_resources(
        include_inactive=include_inactive, search=search, resource_type=resource_type
    )
    return [ResourceOut(**r.__dict__) for r in resources]


@router.get("/{resource_id}", response=ResourceOut)
def get_resource(request: HttpRequest, resource_id: UUID):
    require_permission(request, Permissions.RESOURCE_VIEW)
    return ResourceOut(**_get_or_404(resource_id).__dict__)


@router.get("/{resource_id}/estimate", response=CostEstimateOut)
def estimate_cost(request: HttpRequest, resource_id: UUID, starts_at: datetime, ends_at: datetime):
    """Cost estimate for a prospective booking window."""
    require_permission(request, Permissions.RESOURCE_VIEW)
    resource = _get_or_404(resource_id)
    if ends_at <= starts_at:
        raise HttpError(400, "End time must be after start time")
    return CostEstimateOut(
        cost=pricing.calculate_reservation_cost(resource, starts_at, ends_at),
        label=pricing.format_cost_estimate(resource, starts_at, ends_at),
    )


# =============================================================================
# Management Endpoints
# =============================================================================

@router.post("/", response=ResourceOut)
def create_resource(request: HttpRequest, payload: ResourceIn):
    require_permission(request, Permissions.RESOURCE_MANAGE)
    try:
        resource = services.create_resource(ResourceData(**payload.dict()), created_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))
    return ResourceOut(**resource.__dict__)


@router.put("/{resource_id}", response=ResourceOut)
def update_resource(request: HttpRequest, resource_id: UUID, payload: ResourceIn):
    require_permission(request, Permissions.RESOURCE_MANAGE)
    try:
        resource = services.update_resource(resource_id, ResourceData(**payload.dict()))
    except ValueError as e:
        raise HttpError(400, str(e))
    if not resource:
        raise HttpError(404, "Resource not found")
    return ResourceOut(**resource.__dict__)


@router.post("/{resource_id}/activate", response=ResourceOut)
def activate_resource(request: HttpRequest, resource_id: UUID):
    require_permission(request, Permissions.RESOURCE_MANAGE)
    return ResourceOut(**_require(services.activate_resource(resource_id)).__dict__)


@router.post("/{resource_id}/deactivate", response=ResourceOut)
def deactivate_resource(request: HttpRequest, resource_id: UUID):
    require_permission(request, Permissions.RESOURCE_MANAGE)
    return ResourceOut(**_require(services.deactivate_resource(resource_id)).__dict__)


@router.post("/{resource_id}/maintenance", response=ResourceOut)
def mark_maintenance(request: HttpRequest, resource_id: UUID):
    require_permission(request, Permissions.RESOURCE_MANAGE)
    return ResourceOut(**_require(services.mark_maintenance(resource_id)).__dict__)


def _require(resource):
    if not resource:
        raise HttpError(404, "Resource not found")
    return resource
