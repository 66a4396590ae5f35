from django.contrib import admin
from .models import Resource


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ['name', 'resource_type', 'status', 'pricing_model', 'pricing_unit', 'rate']
    list_filter = ['resource_type', 'status', 'pricing_model']
    search_fields = ['name', 'description']
