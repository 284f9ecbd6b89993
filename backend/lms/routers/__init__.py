"""API routers for the LMS backend."""

from lms.routers.customers import router as customers_router
from lms.routers.properties import router as properties_router
from lms.routers.tax import router as tax_router
from lms.routers.workflow import router as workflow_router
from lms.routers.notifications import router as notifications_router
from lms.routers.activity_logs import router as activity_logs_router
from lms.routers.audit_logs import router as audit_logs_router
from lms.routers.sync import router as sync_router

__all__ = [
    "customers_router",
    "properties_router",
    "tax_router",
    "workflow_router",
    "notifications_router",
    "activity_logs_router",
    "audit_logs_router",
    "sync_router",
]
