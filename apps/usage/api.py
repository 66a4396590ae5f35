"""API Router for Usage app."""
from typing import List, Optional
from uuid import UUID
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.identity.permissions import Permissions, get_user_permissions
from apps.reservations.models import Reservation
from apps.reservations.schemas import RejectionOut

from . import services
from .models import UsageLog
from .schemas import CheckOutIn, CheckInIn, VerificationIn, DisputeIn, UsageLogOut

router = Router(tags=["Usage"])


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


def _get_or_404(usage_log_id: UUID):
    usage_log = services.get_usage_log(usage_log_id)
    if not usage_log:
        raise HttpError(404, "Usage log not found")
    return usage_log


def _respond(result):
    if not result.success:
        return 400, RejectionOut(reason=result.reason, message=result.message)
    return 200, UsageLogOut(**result.data.__dict__)


# =============================================================================
# Usage Endpoints
# =============================================================================

@router.get("/", response=List[UsageLogOut])
def list_usage_logs(
    request: HttpRequest,
    resource_id: Optional[UUID] = None,
    status: Optional[str] = None,
    pending_verification: bool = False,
):
    """List usage logs. Members only see their own."""
    require_auth(request)
    user_id = None if has_permission(request, Permissions.USAGE_VIEW_ALL) else request.user.id
    usage_logs = services.list_usage_logs(
        user_id=user_id,
        resource_id=resource_id,
        status=status,
        pending_verification=pending_verification,
    )
    return [UsageLogOut(**u.__dict__) for u in usage_logs]


@router.post("/check-out", response={200: UsageLogOut, 400: RejectionOut})
def check_out(request: HttpRequest, payload: CheckOutIn):
    """Start using a confirmed reservation."""
    require_permission(request, Permissions.USAGE_RECORD)
    try:
        result = services.check_out(
            reservation_id=payload.reservation_id,
            user_id=request.user.id,
            start_reading=payload.start_reading,
            start_photo_path=payload.start_photo_path,
            start_notes=payload.notes,
        )
    except Reservation.DoesNotExist:
        raise HttpError(404, "Reservation not found")
    return _respond(result)


@router.get("/{usage_log_id}", response=UsageLogOut)
def get_usage_log(request: HttpRequest, usage_log_id: UUID):
    require_auth(request)
    usage_log = _get_or_404(usage_log_id)
    if usage_log.user_id != request.user.id and not has_permission(request, Permissions.USAGE_VIEW_ALL):
        raise HttpError(403, "Access denied")
    return UsageLogOut(**usage_log.__dict__)


@router.post("/{usage_log_id}/check-in", response={200: UsageLogOut, 400: RejectionOut})
def check_in(request: HttpRequest, usage_log_id: UUID, payload: CheckInIn):
    require_permission(request, Permissions.USAGE_RECORD)
    usage_log = _get_or_404(usage_log_id)
    if usage_log.user_id != request.user.id:
        raise HttpError(403, "Can only check in your own usage")
    result = services.check_in(
        usage_log_id,
        end_reading=payload.end_reading,
        end_photo_path=payload.end_photo_path,
        notes=payload.notes,
    )
    return _respond(result)


@router.post("/{usage_log_id}/verify", response={200: UsageLogOut, 400: RejectionOut})
def verify_usage(request: HttpRequest, usage_log_id: UUID, payload: VerificationIn):
    require_permission(request, Permissions.USAGE_VERIFY)
    try:
        result = services.verify_usage(
            usage_log_id, verified_by_id=request.user.id, admin_notes=payload.admin_notes
        )
    except UsageLog.DoesNotExist:
        raise HttpError(404, "Usage log not found")
    return _respond(result)


@router.post("/{usage_log_id}/dispute", response={200: UsageLogOut, 400: RejectionOut})
def dispute_usage(request: HttpRequest, usage_log_id: UUID, payload: DisputeIn):
    require_permission(request, Permissions.USAGE_VERIFY)
    try:
        result = services.dispute_usage(
            usage_log_id, admin_notes=payload.admin_notes, disputed_by_id=request.user.id
        )
    except UsageLog.DoesNotExist:
        raise HttpError(404, "Usage log not found")
    return _respond(result)
