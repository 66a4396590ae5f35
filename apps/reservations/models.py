"""Models for Reservations app."""
import uuid
from django.db import models


class ReservationStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending Approval'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    CHECKED_OUT = 'CHECKED_OUT', 'Checked Out'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


# Statuses that count against resource availability
BLOCKING_STATUSES = [
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.CHECKED_OUT,
]

UPCOMING_STATUSES = [ReservationStatus.PENDING, ReservationStatus.CONFIRMED]

CANCELLABLE_STATUSES = [ReservationStatus.PENDING, ReservationStatus.CONFIRMED]

# current status -> statuses it may move to
TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED},
    ReservationStatus.CHECKED_OUT: {ReservationStatus.COMPLETED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS[ReservationStatus(current)]


def blocks_availability(status: str) -> bool:
    return status in BLOCKING_STATUSES


class Reservation(models.Model):
    """
    One member's booking of one resource for the half-open window
    [starts_at, ends_at). Owns at most one usage log (created at check-out).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource_id = models.UUIDField(db_index=True)  # References Resource
    user_id = models.UUIDField(db_index=True)  # References User

    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()

    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.PENDING
    )
    notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)

    # Workflow
    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by_id = models.UUIDField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by_id = models.UUIDField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-starts_at']
        indexes = [
            models.Index(fields=['resource_id', 'starts_at', 'ends_at']),
            models.Index(fields=['user_id', 'status']),
            models.Index(fields=['status', 'starts_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(ends_at__gt=models.F('starts_at')),
                name='reservation_ends_after_start',
            ),
        ]

    def __str__(self):
        return f"Reservation {self.id} ({self.status})"
