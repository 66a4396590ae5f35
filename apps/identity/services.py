"""Services for Identity app."""
import logging
from typing import List, Optional
from django.utils import timezone

from .models import User, UserRole, UserStatus
from .dtos import UserDTO
from .permissions import get_user_permissions

logger = logging.getLogger(__name__)


def _user_to_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        display_name=user.get_full_name() or user.username,
        role=user.role,
        status=user.status,
        is_active=user.is_active,
        permissions=get_user_permissions(user),
    )


def get_user_dto(user_id) -> UserDTO | None:
    try:
        return _user_to_dto(User.objects.get(id=user_id))
    except User.DoesNotExist:
        return None


def list_members(status: Optional[str] = None) -> List[UserDTO]:
    queryset = User.objects.all()
    if status:
        queryset = queryset.filter(status=status)
    return [_user_to_dto(user) for user in queryset]


def list_admin_ids() -> List:
    """IDs of approved administrators (recipients of admin alerts)."""
    return list(
        User.objects.filter(
            role=UserRole.ADMIN,
            status=UserStatus.APPROVED,
            is_active=True,
        ).values_list('id', flat=True)
    )


def set_user_status(user_id, status: str, reason: Optional[str] = None) -> UserDTO | None:
    """Approve, reject, suspend or reactivate a member account."""
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None

    previous = user.status
    user.status = status
    user.status_reason = reason or ""
    user.status_changed_at = timezone.now()
    user.save(update_fields=['status', 'status_reason', 'status_changed_at'])
    logger.info(f"User {user.username} status {previous} -> {status}")
    return _user_to_dto(user)
