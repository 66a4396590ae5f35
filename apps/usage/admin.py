from django.contrib import admin
from .models import UsageLog


@admin.register(UsageLog)
class UsageLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'resource_id', 'user_id', 'checked_out_at', 'checked_in_at', 'status', 'calculated_cost']
    list_filter = ['status']
    readonly_fields = ['status', 'duration_hours', 'distance_units', 'calculated_cost', 'verified_by_id', 'verified_at']
