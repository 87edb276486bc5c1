"""API routers."""

from assurance.routers.admin import router as admin_router
from assurance.routers.cases import router as cases_router
from assurance.routers.internal import router as internal_router
from assurance.routers.notifications import router as notifications_router
from assurance.routers.reports import router as reports_router

__all__ = [
    "admin_router",
    "cases_router",
    "internal_router",
    "notifications_router",
    "reports_router",
]
