"""
Identity API endpoints.

Session authentication is handled by Django; these endpoints expose the
current profile and the member approval queue.
"""
from typing import List, Optional
from uuid import UUID
from ninja import Router, Schema
from ninja.errors import HttpError
from django.http import HttpRequest

from .dtos import UserDTO
from .models import UserStatus
from .permissions import Permissions, get_user_permissions
from .services import get_user_dto, list_members, set_user_status

router = Router(tags=["Identity"])


class StatusChangeSchema(Schema):
    status: str
    reason: str = ""


# =============================================================================
# Helper Functions
# =============================================================================

def require_auth(request: HttpRequest):
    """Require authenticated user."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")


def require_permission(request: HttpRequest, permission: str):
    """Require specific permission."""
    require_auth(request)
    if permission not in get_user_permissions(request.user):
        raise HttpError(403, "Permission denied")


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/me", response=UserDTO)
def get_me(request: HttpRequest):
    """Current user's profile, including pending accounts."""
    require_auth(request)
    user_dto = get_user_dto(request.user.id)
    if not user_dto:
        raise HttpError(404, "User not found")
    return user_dto


@router.get("/members", response=List[UserDTO])
def list_community_members(request: HttpRequest, status: Optional[str] = None):
    """List members, e.g. ?status=PENDING for the approval queue."""
    require_permission(request, Permissions.MEMBER_VIEW)
    return list_members(status=status)


@router.post("/members/{user_id}/status", response=UserDTO)
def change_member_status(request: HttpRequest, user_id: UUID, payload: StatusChangeSchema):
    """Approve, reject, suspend or reactivate a member."""
    require_permission(request, Permissions.MEMBER_MANAGE)
    if payload.status not in UserStatus.values:
        raise HttpError(400, f"Unknown status: {payload.status}")
    if user_id == request.user.id:
        raise HttpError(400, "You cannot change your own status")

    updated = set_user_status(user_id, payload.status, payload.reason)
    if not updated:
        raise HttpError(404, "User not found")
    return updated
