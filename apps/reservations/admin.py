from django.contrib import admin
from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['id', 'resource_id', 'user_id', 'starts_at', 'ends_at', 'status']
    list_filter = ['status']
    date_hierarchy = 'starts_at'
    # Status changes go through the reservation services
    readonly_fields = ['status', 'confirmed_at', 'confirmed_by_id', 'cancelled_at', 'cancelled_by_id']
