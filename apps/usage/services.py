"""
Services for Usage app - Usage log state machine.

    (reservation CONFIRMED) ──check out──> CHECKED_OUT ──check in──> COMPLETED
    COMPLETED | DISPUTED ──verify──> VERIFIED
    COMPLETED | VERIFIED | DISPUTED ──dispute──> DISPUTED

Check-out and check-in move the paired reservation in the same
transaction, so a reservation is CHECKED_OUT iff its usage log exists
and is still open.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction as db_transaction
from django.utils import timezone

from apps.core.exceptions import InvariantViolation
from apps.core.notification_service import notify, NotificationKind
from apps.core.results import OperationResult, Rejection
from apps.reservations.models import Reservation, ReservationStatus
from apps.reservations import services as reservation_services
from apps.resources.models import Resource, unit_abbreviation
from apps.resources import pricing

from .models import (
    UsageLog, UsageLogStatus, BILLABLE_STATUSES, PENDING_VERIFICATION_STATUSES,
    can_transition, is_billable,
)
from .dtos import UsageLogDTO

logger = logging.getLogger(__name__)


def _checkout_grace() -> timedelta:
    return timedelta(minutes=getattr(settings, 'USAGE_CHECKOUT_GRACE_MINUTES', 30))


# =============================================================================
# Check-out / Check-in
# =============================================================================

def check_out(
    reservation_id: UUID,
    user_id: UUID,
    start_reading: Optional[Decimal] = None,
    start_photo_path: str = "",
    start_notes: str = "",
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Start using a confirmed reservation.

    Allowed from 30 minutes before the window starts until it ends.
    Creates the usage log and moves the reservation to CHECKED_OUT
    atomically.
    """
    now = now or timezone.now()

    with db_transaction.atomic():
        reservation = Reservation.objects.select_for_update().get(id=reservation_id)

        if reservation.user_id != user_id:
            return _rejected(
                Rejection.NOT_RESERVATION_OWNER,
                "You can only check out your own reservations.",
            )
        if UsageLog.objects.filter(reservation_id=reservation.id).exists():
            return _rejected(
                Rejection.ALREADY_CHECKED_OUT,
                "This reservation has already been checked out.",
            )
        if reservation.status != ReservationStatus.CONFIRMED:
            return _rejected(
                Rejection.INVALID_TRANSITION,
                "Only confirmed reservations can be checked out.",
            )
        if not (reservation.starts_at - _checkout_grace() <= now < reservation.ends_at):
            return _rejected(
                Rejection.OUTSIDE_CHECKOUT_WINDOW,
                "Check-out is available from 30 minutes before your reservation until it ends.",
            )

        try:
            with db_transaction.atomic():
                usage_log = UsageLog.objects.create(
                    reservation_id=reservation.id,
                    user_id=reservation.user_id,
                    resource_id=reservation.resource_id,
                    status=UsageLogStatus.CHECKED_OUT,
                    checked_out_at=now,
                    start_reading=start_reading,
                    start_photo_path=start_photo_path or "",
                    start_notes=start_notes or "",
                )
        except IntegrityError:
            return _rejected(
                Rejection.ALREADY_CHECKED_OUT,
                "This reservation has already been checked out.",
            )

        result = reservation_services.mark_checked_out(reservation)
        if not result.success:
            raise InvariantViolation(f"Reservation {reservation.id} could not be checked out")

    logger.info(f"Checked out reservation {reservation_id} as usage log {usage_log.id}")
    return OperationResult.ok(_to_dto(usage_log))


def check_in(
    usage_log_id: UUID,
    checked_in_at: Optional[datetime] = None,
    end_reading: Optional[Decimal] = None,
    end_photo_path: str = "",
    notes: str = "",
) -> OperationResult:
    """
    Finish using a resource.

    Computes duration, distance (when both readings exist) and cost, and
    completes the paired reservation.
    """
    checked_in_at = checked_in_at or timezone.now()

    with db_transaction.atomic():
        usage_log = UsageLog.objects.select_for_update().get(id=usage_log_id)

        if not can_transition(usage_log.status, UsageLogStatus.COMPLETED):
            return _invalid_transition(usage_log, "Only usage that is checked out can be checked in.")
        if checked_in_at < usage_log.checked_out_at:
            return _rejected(
                Rejection.CHECK_IN_BEFORE_CHECK_OUT,
                "Check-in time cannot be before check-out time.",
                usage_log,
            )
        if (
            end_reading is not None
            and usage_log.start_reading is not None
            and Decimal(str(end_reading)) < usage_log.start_reading
        ):
            return _rejected(
                Rejection.READING_BELOW_START,
                "End reading cannot be less than start reading.",
                usage_log,
            )

        usage_log.status = UsageLogStatus.COMPLETED
        usage_log.checked_in_at = checked_in_at
        usage_log.end_reading = Decimal(str(end_reading)) if end_reading is not None else None
        usage_log.end_photo_path = end_photo_path or ""
        usage_log.end_notes = notes or ""
        _apply_metrics(usage_log)
        usage_log.save()

        reservation = Reservation.objects.select_for_update().get(id=usage_log.reservation_id)
        result = reservation_services.complete_reservation(reservation)
        if not result.success:
            raise InvariantViolation(
                f"Reservation {reservation.id} is {reservation.status} while usage {usage_log.id} was open"
            )

    logger.info(
        f"Checked in usage log {usage_log_id}: {usage_log.duration_hours}h, cost {usage_log.calculated_cost}"
    )
    return OperationResult.ok(_to_dto(usage_log))


def _apply_metrics(usage_log: UsageLog):
    """Fill duration, distance and cost from the check-out/check-in data."""
    usage_log.duration_hours = pricing.hours_between(usage_log.checked_out_at, usage_log.checked_in_at)
    if usage_log.start_reading is not None and usage_log.end_reading is not None:
        usage_log.distance_units = usage_log.end_reading - usage_log.start_reading
    else:
        usage_log.distance_units = None

    resource = Resource.objects.get(id=usage_log.resource_id)
    usage_log.calculated_cost = pricing.calculate_usage_cost(
        resource, usage_log.duration_hours, usage_log.distance_units
    )


def recalculate_usage(usage_log_id: UUID) -> OperationResult:
    """Recompute metrics and cost, e.g. after correcting a resource's rate."""
    with db_transaction.atomic():
        usage_log = UsageLog.objects.select_for_update().get(id=usage_log_id)
        if usage_log.status == UsageLogStatus.CHECKED_OUT:
            return _invalid_transition(usage_log, "Usage must be checked in before it can be recalculated.")
        if is_invoiced(usage_log.id):
            return _rejected(
                Rejection.ALREADY_INVOICED,
                "Invoiced usage cannot be recalculated.",
                usage_log,
            )
        _apply_metrics(usage_log)
        usage_log.save(update_fields=['duration_hours', 'distance_units', 'calculated_cost', 'updated_at'])

    return OperationResult.ok(_to_dto(usage_log))


# =============================================================================
# Verification
# =============================================================================

def verify_usage(
    usage_log_id: UUID,
    verified_by_id: UUID,
    admin_notes: str = "",
    now: Optional[datetime] = None,
) -> OperationResult:
    """Accept completed (or previously disputed) usage."""
    now = now or timezone.now()

    with db_transaction.atomic():
        usage_log = UsageLog.objects.select_for_update().get(id=usage_log_id)
        if not can_transition(usage_log.status, UsageLogStatus.VERIFIED):
            return _invalid_transition(usage_log, "Only completed or disputed usage can be verified.")

        usage_log.status = UsageLogStatus.VERIFIED
        usage_log.verified_by_id = verified_by_id
        usage_log.verified_at = now
        usage_log.admin_notes = admin_notes or ""
        usage_log.save(update_fields=['status', 'verified_by_id', 'verified_at', 'admin_notes', 'updated_at'])
        dto = _to_dto(usage_log)
        db_transaction.on_commit(lambda: _notify_member(NotificationKind.USAGE_VERIFIED, dto))

    logger.info(f"Usage log {usage_log_id} verified by {verified_by_id}")
    return OperationResult.ok(dto)


def dispute_usage(
    usage_log_id: UUID,
    admin_notes: str,
    disputed_by_id: Optional[UUID] = None,
) -> OperationResult:
    """Flag closed usage for review. Disputed usage is not billable."""
    with db_transaction.atomic():
        usage_log = UsageLog.objects.select_for_update().get(id=usage_log_id)
        if not can_transition(usage_log.status, UsageLogStatus.DISPUTED):
            return _invalid_transition(usage_log, "Usage must be checked in before it can be disputed.")

        usage_log.status = UsageLogStatus.DISPUTED
        usage_log.admin_notes = admin_notes or ""
        usage_log.save(update_fields=['status', 'admin_notes', 'updated_at'])
        dto = _to_dto(usage_log)
        db_transaction.on_commit(lambda: _notify_member(NotificationKind.USAGE_DISPUTED, dto))

    logger.info(f"Usage log {usage_log_id} disputed by {disputed_by_id}")
    return OperationResult.ok(dto)


# =============================================================================
# Queries
# =============================================================================

def get_usage_log(usage_log_id: UUID) -> Optional[UsageLogDTO]:
    try:
        return _to_dto(UsageLog.objects.get(id=usage_log_id))
    except UsageLog.DoesNotExist:
        return None


def get_usage_for_reservation(reservation_id: UUID) -> Optional[UsageLogDTO]:
    usage_log = UsageLog.objects.filter(reservation_id=reservation_id).first()
    return _to_dto(usage_log) if usage_log else None


def is_invoiced(usage_log_id: UUID) -> bool:
    """True when an invoice line references this usage log."""
    from apps.billing.models import InvoiceItem
    return InvoiceItem.objects.filter(usage_log_id=usage_log_id).exists()


def list_usage_logs(
    user_id: Optional[UUID] = None,
    resource_id: Optional[UUID] = None,
    status: Optional[str] = None,
    pending_verification: bool = False,
    billable_only: bool = False,
) -> List[UsageLogDTO]:
    queryset = UsageLog.objects.all()
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if resource_id:
        queryset = queryset.filter(resource_id=resource_id)
    if status:
        queryset = queryset.filter(status=status)
    if pending_verification:
        queryset = queryset.filter(status__in=PENDING_VERIFICATION_STATUSES)
    if billable_only:
        queryset = queryset.filter(status__in=BILLABLE_STATUSES)

    usage_logs = list(queryset)
    resources = Resource.objects.in_bulk({u.resource_id for u in usage_logs})
    return [_usage_log_to_dto(u, resources.get(u.resource_id)) for u in usage_logs]


# =============================================================================
# Display Helpers
# =============================================================================

def format_duration_hours(duration_hours: Optional[Decimal]) -> Optional[str]:
    """e.g. "2h 30m", "3h" or "45m"."""
    if not duration_hours:
        return None
    hours = int(duration_hours)
    minutes = int(((duration_hours - hours) * 60).quantize(Decimal('1')))
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_distance(distance_units: Optional[Decimal], pricing_unit: Optional[str]) -> Optional[str]:
    """e.g. "40.0 mi"."""
    if not distance_units:
        return None
    return f"{distance_units:,.1f} {unit_abbreviation(pricing_unit) or 'units'}"


# =============================================================================
# Helper Functions
# =============================================================================

def _rejected(reason: str, message: str, usage_log: Optional[UsageLog] = None) -> OperationResult:
    logger.warning(f"Usage operation rejected: {reason}")
    return OperationResult.rejected(reason, message, data=_to_dto(usage_log) if usage_log else None)


def _invalid_transition(usage_log: UsageLog, message: str) -> OperationResult:
    return _rejected(Rejection.INVALID_TRANSITION, message, usage_log)


def _notify_member(kind: str, dto: UsageLogDTO):
    notify(kind, dto.user_id, {
        'usage_log_id': str(dto.id),
        'resource_name': dto.resource_name,
        'cost': pricing.format_money(dto.calculated_cost) if dto.calculated_cost is not None else "",
        'admin_notes': dto.admin_notes,
    })


def _to_dto(usage_log: UsageLog) -> UsageLogDTO:
    resource = Resource.objects.filter(id=usage_log.resource_id).first()
    return _usage_log_to_dto(usage_log, resource)


def _usage_log_to_dto(usage_log: UsageLog, resource: Optional[Resource]) -> UsageLogDTO:
    """Convert UsageLog model to DTO."""
    return UsageLogDTO(
        id=usage_log.id,
        reservation_id=usage_log.reservation_id,
        user_id=usage_log.user_id,
        resource_id=usage_log.resource_id,
        resource_name=resource.name if resource else "",
        status=usage_log.status,
        checked_out_at=usage_log.checked_out_at,
        checked_in_at=usage_log.checked_in_at,
        start_reading=usage_log.start_reading,
        end_reading=usage_log.end_reading,
        start_photo_path=usage_log.start_photo_path,
        end_photo_path=usage_log.end_photo_path,
        start_notes=usage_log.start_notes,
        end_notes=usage_log.end_notes,
        duration_hours=usage_log.duration_hours,
        distance_units=usage_log.distance_units,
        calculated_cost=usage_log.calculated_cost,
        formatted_duration=format_duration_hours(usage_log.duration_hours),
        formatted_distance=format_distance(
            usage_log.distance_units, resource.pricing_unit if resource else None
        ),
        verified_by_id=usage_log.verified_by_id,
        verified_at=usage_log.verified_at,
        admin_notes=usage_log.admin_notes,
        is_billable=is_billable(usage_log.status),
    )
