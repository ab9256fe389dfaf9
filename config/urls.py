"""
URL configuration for HaulTracker project.
"""
from django.urls import path
from ninja import NinjaAPI

from apps.core.api_errors import setup_exception_handlers

api = NinjaAPI(
    title="HaulTracker API",
    version="1.0.0",
    description="Multi-tenant dumpster rental management API",
    docs_url="/docs",
)
setup_exception_handlers(api)

from apps.audit.api import router as audit_router
from apps.bookings.api import dashboard_router, quotes_router, router as bookings_router
from apps.fleet.api import inventory_router, types_router
from apps.identity.api import router as auth_router, team_router
from apps.integrations.api import api_keys_router, webhooks_router
from apps.integrations.v1_api import api as v1_api
from apps.organizations.admin_api import router as admin_organizations_router
from apps.organizations.api import (
    blackout_dates_router,
    public_router,
    router as organization_router,
    service_areas_router,
    settings_router,
)

api.add_router("/auth", auth_router)
api.add_router("/team", team_router)
api.add_router("/organizations", public_router)
api.add_router("/organization", organization_router)
api.add_router("/settings", settings_router)
api.add_router("/service-areas", service_areas_router)
api.add_router("/blackout-dates", blackout_dates_router)
api.add_router("/admin/organizations", admin_organizations_router)
api.add_router("/dumpster-types", types_router)
api.add_router("/inventory", inventory_router)
api.add_router("/bookings", bookings_router)
api.add_router("/quotes", quotes_router)
api.add_router("/dashboard", dashboard_router)
api.add_router("/api-keys", api_keys_router)
api.add_router("/webhooks", webhooks_router)
api.add_router("/audit-logs", audit_router)

urlpatterns = [
    path('api/v1/', v1_api.urls),
    path('api/', api.urls),
]
