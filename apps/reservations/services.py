"""
Services for Reservations app - Reservation state machine.

    PENDING ──confirm──> CONFIRMED ──check out──> CHECKED_OUT ──complete──> COMPLETED
       └──────cancel──────┴──> CANCELLED   (only while starts_at is in the future)

Every transition takes the acting user and the current time explicitly
and returns an OperationResult. Expected rule violations are rejections;
a missing reservation raises Reservation.DoesNotExist.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from django.db import transaction as db_transaction
from django.utils import timezone

from apps.core.exceptions import InvariantViolation
from apps.core.notification_service import notify, notify_admins, NotificationKind
from apps.core.results import OperationResult, Rejection
from apps.resources.models import Resource
from apps.resources import pricing

from .models import (
    Reservation, ReservationStatus, UPCOMING_STATUSES, CANCELLABLE_STATUSES,
    can_transition,
)
from .dtos import ReservationDTO
from . import availability

logger = logging.getLogger(__name__)


# =============================================================================
# Predicates
# =============================================================================

def is_past(reservation, now: Optional[datetime] = None) -> bool:
    """The window has ended."""
    return reservation.ends_at < (now or timezone.now())


def is_in_progress(reservation, now: Optional[datetime] = None) -> bool:
    now = now or timezone.now()
    return reservation.starts_at < now < reservation.ends_at


def is_upcoming(reservation, now: Optional[datetime] = None) -> bool:
    return reservation.starts_at > (now or timezone.now())


def can_be_cancelled(reservation, now: Optional[datetime] = None) -> bool:
    return reservation.status in CANCELLABLE_STATUSES and is_upcoming(reservation, now)


def format_duration(hours: Decimal) -> str:
    """e.g. "45 min", "1 hr", "3 hrs", "2.5 hrs"."""
    if hours < 1:
        return f"{round(hours * 60)} min"
    if hours == int(hours):
        return f"{int(hours)} hr{'s' if hours > 1 else ''}"
    return f"{hours:.1f} hrs"


def _assert_window(starts_at: datetime, ends_at: datetime):
    if ends_at <= starts_at:
        raise InvariantViolation(
            f"Reservation must end after it starts ({starts_at} >= {ends_at})"
        )


# =============================================================================
# Booking Rules
# =============================================================================

def check_booking_rules(
    resource: Resource,
    starts_at: datetime,
    ends_at: datetime,
    now: datetime,
    exclude_reservation_id: Optional[UUID] = None,
) -> Optional[OperationResult]:
    """
    Validate a proposed booking window against the resource's rules.
    Returns a rejection, or None when the window is acceptable.
    """
    if not resource.can_be_reserved:
        return OperationResult.rejected(
            Rejection.RESOURCE_UNAVAILABLE,
            "This resource is currently unavailable for reservations.",
        )

    if starts_at <= now:
        return OperationResult.rejected(
            Rejection.START_IN_PAST, "Start time must be in the future."
        )

    if not availability.is_slot_available(resource.id, starts_at, ends_at, exclude_reservation_id):
        return OperationResult.rejected(
            Rejection.SLOT_UNAVAILABLE,
            "This time slot is not available. Please choose a different time.",
        )

    duration_days = pricing.inclusive_day_span(starts_at, ends_at)
    if not resource.is_valid_booking_duration(duration_days):
        if resource.max_reservation_days == 0:
            message = "This resource only allows single-day bookings."
        else:
            message = f"Reservations cannot exceed {resource.max_reservation_days} days."
        return OperationResult.rejected(Rejection.DURATION_EXCEEDED, message)

    if resource.advance_booking_days is not None:
        days_ahead = (pricing.local_date(starts_at) - pricing.local_date(now)).days
        if days_ahead > resource.advance_booking_days:
            return OperationResult.rejected(
                Rejection.ADVANCE_BOOKING_EXCEEDED,
                f"Bookings cannot be made more than {resource.advance_booking_days} days in advance.",
            )

    return None


# =============================================================================
# Reservation Services
# =============================================================================

def create_reservation(
    resource_id: UUID,
    user_id: UUID,
    starts_at: datetime,
    ends_at: datetime,
    notes: str = "",
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Book a resource.

    The resource row is locked for the availability check and insert, so
    concurrent bookings of the same resource are serialized.
    Starts CONFIRMED, or PENDING when the resource requires approval.
    """
    now = now or timezone.now()
    _assert_window(starts_at, ends_at)

    with db_transaction.atomic():
        resource = Resource.objects.select_for_update().get(id=resource_id)

        rejection = check_booking_rules(resource, starts_at, ends_at, now)
        if rejection is not None:
            logger.warning(
                f"Reservation for resource {resource_id} by {user_id} rejected: {rejection.reason}"
            )
            return rejection

        status = ReservationStatus.PENDING if resource.requires_approval else ReservationStatus.CONFIRMED
        reservation = Reservation.objects.create(
            resource_id=resource.id,
            user_id=user_id,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status,
            notes=notes or "",
            confirmed_at=now if status == ReservationStatus.CONFIRMED else None,
        )
        dto = _reservation_to_dto(reservation, resource.name)
        price = pricing.format_cost_estimate(resource, starts_at, ends_at)
        db_transaction.on_commit(lambda: _notify_created(dto, price))

    logger.info(f"Created reservation {reservation.id} ({status}) for resource {resource.id}")
    return OperationResult.ok(dto)


def confirm_reservation(
    reservation_id: UUID,
    confirmed_by_id: UUID,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Approve a pending reservation."""
    now = now or timezone.now()

    with db_transaction.atomic():
        reservation = Reservation.objects.select_for_update().get(id=reservation_id)
        if not can_transition(reservation.status, ReservationStatus.CONFIRMED):
            return _invalid_transition(reservation, "Only pending reservations can be confirmed.")

        reservation.status = ReservationStatus.CONFIRMED
        reservation.confirmed_at = now
        reservation.confirmed_by_id = confirmed_by_id
        reservation.save(update_fields=['status', 'confirmed_at', 'confirmed_by_id', 'updated_at'])
        dto = _to_dto(reservation)
        db_transaction.on_commit(lambda: _notify_member(NotificationKind.RESERVATION_CONFIRMED, dto))

    logger.info(f"Reservation {reservation_id} confirmed by {confirmed_by_id}")
    return OperationResult.ok(dto)


def cancel_reservation(
    reservation_id: UUID,
    cancelled_by_id: UUID,
    reason: str = "",
    now: Optional[datetime] = None,
) -> OperationResult:
    """Cancel a pending or confirmed reservation that has not started yet."""
    now = now or timezone.now()

    with db_transaction.atomic():
        reservation = Reservation.objects.select_for_update().get(id=reservation_id)
        if not can_transition(reservation.status, ReservationStatus.CANCELLED):
            return _invalid_transition(
                reservation, "Only pending or confirmed reservations can be cancelled."
            )
        if not is_upcoming(reservation, now):
            return OperationResult.rejected(
                Rejection.ALREADY_STARTED,
                "Reservations cannot be cancelled once they have started.",
                data=_to_dto(reservation),
            )

        reservation.status = ReservationStatus.CANCELLED
        reservation.cancelled_at = now
        reservation.cancelled_by_id = cancelled_by_id
        reservation.cancellation_reason = reason or ""
        reservation.save(update_fields=[
            'status', 'cancelled_at', 'cancelled_by_id', 'cancellation_reason', 'updated_at',
        ])

    logger.info(f"Reservation {reservation_id} cancelled by {cancelled_by_id}")
    return OperationResult.ok(_to_dto(reservation))


def mark_checked_out(reservation: Reservation) -> OperationResult:
    """
    CONFIRMED -> CHECKED_OUT.

    Only called by usage check-out, inside its transaction, with the
    reservation row already locked.
    """
    if not can_transition(reservation.status, ReservationStatus.CHECKED_OUT):
        return _invalid_transition(reservation, "Only confirmed reservations can be checked out.")
    reservation.status = ReservationStatus.CHECKED_OUT
    reservation.save(update_fields=['status', 'updated_at'])
    return OperationResult.ok(reservation)


def complete_reservation(reservation: Reservation) -> OperationResult:
    """
    CHECKED_OUT -> COMPLETED.

    Only called by usage check-in, inside its transaction.
    """
    if not can_transition(reservation.status, ReservationStatus.COMPLETED):
        return _invalid_transition(reservation, "Only checked-out reservations can be completed.")
    reservation.status = ReservationStatus.COMPLETED
    reservation.save(update_fields=['status', 'updated_at'])
    return OperationResult.ok(reservation)


# =============================================================================
# Queries
# =============================================================================

def get_reservation(reservation_id: UUID) -> Optional[ReservationDTO]:
    try:
        return _to_dto(Reservation.objects.get(id=reservation_id))
    except Reservation.DoesNotExist:
        return None


def list_reservations(
    resource_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
    status: Optional[str] = None,
    scope: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[ReservationDTO]:
    """
    List reservations with optional filters.

    scope: "upcoming" (pending/confirmed, not started), "past" (ended) or
    "current" (confirmed/checked out and in progress).
    """
    now = now or timezone.now()
    queryset = Reservation.objects.all()

    if resource_id:
        queryset = queryset.filter(resource_id=resource_id)
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if status:
        queryset = queryset.filter(status=status)

    if scope == 'upcoming':
        queryset = queryset.filter(starts_at__gt=now, status__in=UPCOMING_STATUSES).order_by('starts_at')
    elif scope == 'past':
        queryset = queryset.filter(ends_at__lt=now)
    elif scope == 'current':
        queryset = queryset.filter(
            starts_at__lte=now,
            ends_at__gte=now,
            status__in=[ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_OUT],
        )
    elif scope:
        raise ValueError(f"Unknown reservation scope: {scope}")

    reservations = list(queryset)
    names = _resource_names(reservations)
    return [_reservation_to_dto(r, names.get(r.resource_id, "")) for r in reservations]


# =============================================================================
# Helper Functions
# =============================================================================

def _invalid_transition(reservation: Reservation, message: str) -> OperationResult:
    logger.warning(f"Rejected transition on reservation {reservation.id} in {reservation.status}")
    return OperationResult.rejected(Rejection.INVALID_TRANSITION, message, data=_to_dto(reservation))


def _notify_created(dto: ReservationDTO, price: str):
    context = _notification_context(dto)
    context['price'] = price
    if dto.status == ReservationStatus.CONFIRMED:
        notify(NotificationKind.RESERVATION_CONFIRMED, dto.user_id, context)
        context['headline'] = "A new reservation has been confirmed."
    else:
        notify(NotificationKind.RESERVATION_PENDING, dto.user_id, context)
        context['headline'] = "A new reservation request needs your approval."

    from apps.identity.services import get_user_dto
    member = get_user_dto(dto.user_id)
    context['member_name'] = f"{member.display_name} ({member.email})" if member else str(dto.user_id)
    notify_admins(NotificationKind.NEW_RESERVATION_ALERT, context)


def _notify_member(kind: str, dto: ReservationDTO):
    notify(kind, dto.user_id, _notification_context(dto))


def _notification_context(dto: ReservationDTO) -> dict:
    return {
        'reservation_id': str(dto.id),
        'resource_name': dto.resource_name,
        'starts_at': timezone.localtime(dto.starts_at).strftime('%A, %B %d, %Y %I:%M %p'),
        'ends_at': timezone.localtime(dto.ends_at).strftime('%A, %B %d, %Y %I:%M %p'),
        'notes': dto.notes,
    }


def _resource_names(reservations: Iterable[Reservation]) -> Dict[UUID, str]:
    resource_ids = {r.resource_id for r in reservations}
    return dict(Resource.objects.filter(id__in=resource_ids).values_list('id', 'name'))


def _to_dto(reservation: Reservation) -> ReservationDTO:
    name = Resource.objects.filter(id=reservation.resource_id).values_list('name', flat=True).first()
    return _reservation_to_dto(reservation, name or "")


def _reservation_to_dto(reservation: Reservation, resource_name: str) -> ReservationDTO:
    """Convert Reservation model to DTO."""
    duration_hours = pricing.hours_between(reservation.starts_at, reservation.ends_at)
    return ReservationDTO(
        id=reservation.id,
        resource_id=reservation.resource_id,
        resource_name=resource_name,
        user_id=reservation.user_id,
        starts_at=reservation.starts_at,
        ends_at=reservation.ends_at,
        status=reservation.status,
        notes=reservation.notes,
        admin_notes=reservation.admin_notes,
        duration_hours=duration_hours,
        formatted_duration=format_duration(duration_hours),
        confirmed_at=reservation.confirmed_at,
        confirmed_by_id=reservation.confirmed_by_id,
        cancelled_at=reservation.cancelled_at,
        cancelled_by_id=reservation.cancelled_by_id,
        cancellation_reason=reservation.cancellation_reason,
        created_at=reservation.created_at,
    )
