"""Models for Usage app."""
import uuid
from django.db import models


class UsageLogStatus(models.TextChoices):
    CHECKED_OUT = 'CHECKED_OUT', 'In Use'
    COMPLETED = 'COMPLETED', 'Completed'
    VERIFIED = 'VERIFIED', 'Verified'
    DISPUTED = 'DISPUTED', 'Disputed'


# Only these feed invoice generation
BILLABLE_STATUSES = [UsageLogStatus.COMPLETED, UsageLogStatus.VERIFIED]

PENDING_VERIFICATION_STATUSES = [UsageLogStatus.COMPLETED, UsageLogStatus.DISPUTED]

TRANSITIONS = {
    UsageLogStatus.CHECKED_OUT: {UsageLogStatus.COMPLETED},
    UsageLogStatus.COMPLETED: {UsageLogStatus.VERIFIED, UsageLogStatus.DISPUTED},
    UsageLogStatus.DISPUTED: {UsageLogStatus.VERIFIED, UsageLogStatus.DISPUTED},
    UsageLogStatus.VERIFIED: {UsageLogStatus.DISPUTED},
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS[UsageLogStatus(current)]


def is_billable(status: str) -> bool:
    return status in BILLABLE_STATUSES


class UsageLog(models.Model):
    """
    Actual usage of a reservation, created at check-out.
    One per reservation; metrics and cost are filled in at check-in.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reservation_id = models.UUIDField(unique=True)  # References Reservation (1:1)
    user_id = models.UUIDField(db_index=True)  # References User
    resource_id = models.UUIDField(db_index=True)  # References Resource

    status = models.CharField(
        max_length=20,
        choices=UsageLogStatus.choices,
        default=UsageLogStatus.CHECKED_OUT
    )

    # Check-out
    checked_out_at = models.DateTimeField()
    start_reading = models.DecimalField(
        max_digits=12, decimal_places=2,
        null=True, blank=True,
        help_text="Odometer/meter reading at check-out"
    )
    start_photo_path = models.CharField(max_length=500, blank=True)
    start_notes = models.TextField(blank=True)

    # Check-in
    checked_in_at = models.DateTimeField(null=True, blank=True)
    end_reading = models.DecimalField(
        max_digits=12, decimal_places=2,
        null=True, blank=True,
        help_text="Odometer/meter reading at check-in"
    )
    end_photo_path = models.CharField(max_length=500, blank=True)
    end_notes = models.TextField(blank=True)

    # Derived at check-in
    duration_hours = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    distance_units = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    calculated_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Verification
    verified_by_id = models.UUIDField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    admin_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-checked_out_at']
        indexes = [
            models.Index(fields=['user_id', 'status']),
            models.Index(fields=['resource_id', 'checked_out_at']),
        ]

    def __str__(self):
        return f"Usage {self.id} ({self.status})"
