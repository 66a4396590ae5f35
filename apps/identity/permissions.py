from typing import List, Dict
from .models import UserRole, User

# Define all available permissions here for reference
class Permissions:
    # Members
    MEMBER_VIEW = "identity.view_members"
    MEMBER_MANAGE = "identity.manage_members"

    # Resources
    RESOURCE_VIEW = "resources.view"
    RESOURCE_MANAGE = "resources.manage"

    # Reservations
    RESERVATION_CREATE = "reservations.create"
    RESERVATION_VIEW_ALL = "reservations.view_all"
    RESERVATION_APPROVE = "reservations.approve"

    # Usage
    USAGE_RECORD = "usage.record"
    USAGE_VIEW_ALL = "usage.view_all"
    USAGE_VERIFY = "usage.verify"

    # Billing
    BILLING_VIEW_OWN = "billing.view_own"
    BILLING_MANAGE = "billing.manage"


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: [
        Permissions.MEMBER_VIEW,
        Permissions.MEMBER_MANAGE,
        Permissions.RESOURCE_VIEW,
        Permissions.RESOURCE_MANAGE,
        Permissions.RESERVATION_CREATE,
        Permissions.RESERVATION_VIEW_ALL,
        Permissions.RESERVATION_APPROVE,
        Permissions.USAGE_RECORD,
        Permissions.USAGE_VIEW_ALL,
        Permissions.USAGE_VERIFY,
        Permissions.BILLING_VIEW_OWN,
        Permissions.BILLING_MANAGE,
    ],
    UserRole.MEMBER: [
        Permissions.RESOURCE_VIEW,
        Permissions.RESERVATION_CREATE,
        Permissions.USAGE_RECORD,
        # Own invoices only - enforced at the API level
        Permissions.BILLING_VIEW_OWN,
    ],
}

def get_user_permissions(user: User) -> List[str]:
    """
    Returns a list of permission strings for the given user based on their role.
    Pending, rejected and suspended accounts get nothing.
    """
    if not user or not user.can_access_app:
        return []

    return ROLE_PERMISSIONS.get(user.role, [])
