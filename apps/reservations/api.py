"""API Router for Reservations app."""
from typing import List, Optional
from uuid import UUID
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.identity.permissions import Permissions, get_user_permissions
from apps.resources.models import Resource

from . import services, availability
from .models import Reservation
from .schemas import (
    ReservationIn, ReservationOut, CancellationIn, RejectionOut, CalendarDayOut,
)

router = Router(tags=["Reservations"])


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


def has_permission(request: HttpRequest, permission: str) -> bool:
    return permission in get_user_permissions(request.user)


def _get_or_404(reservation_id: UUID):
    reservation = services.get_reservation(reservation_id)
    if not reservation:
        raise HttpError(404, "Reservation not found")
    return reservation


def _respond(result):
    """Map an OperationResult to a response: 200 with the reservation, or 400 with the reason."""
    if not result.success:
        return 400, RejectionOut(reason=result.reason, message=result.message)
    return 200, ReservationOut(**result.data.__dict__)


# =============================================================================
# Reservation Endpoints
# =============================================================================

@router.get("/", response=List[ReservationOut])
def list_reservations(
    request: HttpRequest,
    resource_id: Optional[UUID] = None,
    status: Optional[str] = None,
    scope: Optional[str] = None,
):
    """
    List reservations. Members only see their own.

    Query params:
    - scope: upcoming, past or current
    """
    require_auth(request)
    user_id = None if has_permission(request, Permissions.RESERVATION_VIEW_ALL) else request.user.id
    try:
        reservations = services.list_reservations(
            resource_id=resource_id, user_id=user_id, status=status, scope=scope
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    return [ReservationOut(**r.__dict__) for r in reservations]


@router.post("/", response={200: ReservationOut, 400: RejectionOut})
def create_reservation(request: HttpRequest, payload: ReservationIn):
    require_permission(request, Permissions.RESERVATION_CREATE)
    if payload.ends_at <= payload.starts_at:
        raise HttpError(400, "End time must be after start time")
    try:
        result = services.create_reservation(
            resource_id=payload.resource_id,
            user_id=request.user.id,
            starts_at=payload.starts_at,
            ends_at=payload.ends_at,
            notes=payload.notes,
        )
    except Resource.DoesNotExist:
        raise HttpError(404, "Resource not found")
    return _respond(result)


@router.get("/{reservation_id}", response=ReservationOut)
def get_reservation(request: HttpRequest, reservation_id: UUID):
    require_auth(request)
    reservation = _get_or_404(reservation_id)
    if reservation.user_id != request.user.id and not has_permission(request, Permissions.RESERVATION_VIEW_ALL):
        raise HttpError(403, "Access denied")
    return ReservationOut(**reservation.__dict__)


@router.post("/{reservation_id}/confirm", response={200: ReservationOut, 400: RejectionOut})
def confirm_reservation(request: HttpRequest, reservation_id: UUID):
    require_permission(request, Permissions.RESERVATION_APPROVE)
    try:
        result = services.confirm_reservation(reservation_id, confirmed_by_id=request.user.id)
    except Reservation.DoesNotExist:
        raise HttpError(404, "Reservation not found")
    return _respond(result)


@router.post("/{reservation_id}/cancel", response={200: ReservationOut, 400: RejectionOut})
def cancel_reservation(request: HttpRequest, reservation_id: UUID, payload: CancellationIn):
    """Cancel a reservation. Members can only cancel their own."""
    require_auth(request)
    reservation = _get_or_404(reservation_id)
    if reservation.user_id != request.user.id and not has_permission(request, Permissions.RESERVATION_APPROVE):
        raise HttpError(403, "Can only cancel your own reservations")
    result = services.cancel_reservation(
        reservation_id, cancelled_by_id=request.user.id, reason=payload.reason
    )
    return _respond(result)


# =============================================================================
# Availability Endpoints
# =============================================================================

@router.get("/calendar/{resource_id}", response=List[List[CalendarDayOut]])
def resource_calendar(request: HttpRequest, resource_id: UUID, year: int, month: int):
    """Month view of a resource's bookings (Monday-first weeks)."""
    require_permission(request, Permissions.RESOURCE_VIEW)
    if not 1 <= month <= 12:
        raise HttpError(400, "Month must be between 1 and 12")
    weeks = availability.build_calendar_month(resource_id, year, month)
    return [[CalendarDayOut(**day.__dict__) for day in week] for week in weeks]
