"""Enumeration types for the LMS domain model."""

from enum import Enum


class UserRole(str, Enum):
    """Role of a staff user."""
    INPUTTER = "INPUTTER"
    APPROVER = "APPROVER"
    ADMINISTRATOR = "ADMINISTRATOR"
    VIEWER = "VIEWER"


class EntityStatus(str, Enum):
    """Approval workflow status shared by customers and properties."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class EntityType(str, Enum):
    """Kinds of record tracked by the activity log and notifications."""
    CUSTOMER = "CUSTOMER"
    PROPERTY = "PROPERTY"
    TAX_ASSESSMENT = "TAX_ASSESSMENT"

    @property
    def audit_name(self) -> str:
        """Lower-case name used in audit_logs.entity_type."""
        return self.value.lower()

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class WorkflowAction(str, Enum):
    """Actions gated by the transition policy table."""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    EDIT = "edit"
    SYNC = "sync"


class CustomerType(str, Enum):
    PERSON = "PERSON"
    BUSINESS = "BUSINESS"
    GOVERNMENT = "GOVERNMENT"
    MOSQUE_HOSPITAL = "MOSQUE_HOSPITAL"
    NON_PROFIT = "NON_PROFIT"
    CONTRACTOR = "CONTRACTOR"
    RENTAL = "RENTAL"


class PropertyType(str, Enum):
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    MIXED_USE = "MIXED_USE"
    INDUSTRIAL = "INDUSTRIAL"
    AGRICULTURAL = "AGRICULTURAL"
    GOVERNMENT = "GOVERNMENT"
    RELIGIOUS = "RELIGIOUS"
    VACANT_LAND = "VACANT_LAND"


class OccupancyType(str, Enum):
    OWNER_OCCUPIED = "OWNER_OCCUPIED"
    RENTED = "RENTED"
    VACANT = "VACANT"
    MIXED = "MIXED"


class AuditAction(str, Enum):
    """Actions recorded in the field-level audit log."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"


class ActivityAction(str, Enum):
    """Lifecycle events recorded in the activity log."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"
    UNARCHIVED = "UNARCHIVED"
    SYNCED = "SYNCED"
    SYNC_FAILED = "SYNC_FAILED"


class AgoSyncStatus(str, Enum):
    """Sync state of a property against ArcGIS Online."""
    PENDING = "PENDING"
    SYNCED = "SYNCED"
    ERROR = "ERROR"


class SyncRetryStatus(str, Enum):
    PENDING = "PENDING"
    RETRYING = "RETRYING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class NotificationFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"


class JobStatus(str, Enum):
    """Status of async job in outbox."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"
