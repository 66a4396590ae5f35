"""
URL configuration for the Community Resource Sharing project.
"""
from django.contrib import admin
from django.urls import path
from ninja import NinjaAPI

api = NinjaAPI(
    title="Community Resource Sharing API",
    version="1.0.0",
    description="Reservations, usage tracking and member billing for shared community resources",
    docs_url="/docs",
)

from apps.identity.api import router as identity_router
from apps.resources.api import router as resources_router
from apps.reservations.api import router as reservations_router
from apps.usage.api import router as usage_router
from apps.billing.api import router as billing_router

api.add_router("/identity/", identity_router)
api.add_router("/resources/", resources_router)
api.add_router("/reservations/", reservations_router)
api.add_router("/usage/", usage_router)
api.add_router("/billing/", billing_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]
