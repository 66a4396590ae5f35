from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'status', 'is_active']
    list_filter = ['role', 'status', 'is_active']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Community', {'fields': ('role', 'status', 'phone', 'status_changed_at', 'status_reason')}),
    )
