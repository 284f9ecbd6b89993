"""SQLAlchemy models for LMS."""

from lms.models.user import User
from lms.models.customer import Customer
from lms.models.property import Property
from lms.models.tax import TaxAssessment
from lms.models.audit import AuditLog, ActivityLog
from lms.models.notification import Notification
from lms.models.sync import SyncRetry
from lms.models.jobs import JobsOutbox

__all__ = [
    "User",
    "Customer",
    "Property",
    "TaxAssessment",
    "AuditLog",
    "ActivityLog",
    "Notification",
    "SyncRetry",
    "JobsOutbox",
]
