"""Services for the LMS backend."""

from lms.services.activity import ActivityLogger
from lms.services.ago_client import HttpAgoClient, MockAgoClient, SyncResult, get_ago_client
from lms.services.audit import AuditLogger
from lms.services.job_runner import JobRunner
from lms.services.jobs import JobsService
from lms.services.notifications import NotificationService
from lms.services.records import RecordService
from lms.services.sync import SyncService
from lms.services.workflow import WorkflowService

__all__ = [
    "ActivityLogger",
    "HttpAgoClient",
    "MockAgoClient",
    "SyncResult",
    "get_ago_client",
    "AuditLogger",
    "JobRunner",
    "JobsService",
    "NotificationService",
    "RecordService",
    "SyncService",
    "WorkflowService",
]
