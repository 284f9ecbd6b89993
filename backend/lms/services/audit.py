"""Field-level audit logging service."""

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.audit import AuditLog
from lms.models.enums import AuditAction
from lms.models.user import User

logger = logging.getLogger(__name__)

# Bookkeeping columns never recorded as changes
IGNORED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def stringify(value: Any) -> Optional[str]:
    """Render a column value the way it is stored in audit_logs."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


@dataclass
class AuditEntry:
    """A precomputed audit row, also used as the outbox payload."""

    entity_type: str
    entity_id: str
    action: str
    changed_by: str
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AuditEntry":
        return cls(**payload)


def generate_field_changes(
    entity_type: str,
    entity_id: UUID,
    old: Mapping[str, Any],
    new: Mapping[str, Any],
    actor_id: UUID,
    action: AuditAction = AuditAction.UPDATE,
) -> list[AuditEntry]:
    """Compare two records and return one entry per changed field."""
    entries = []
    # Stable order: keys of the old record first, then keys only in the new one
    fields = list(old.keys()) + [k for k in new.keys() if k not in old]

    for field in fields:
        if field in IGNORED_FIELDS:
            continue
        old_value = stringify(old.get(field))
        new_value = stringify(new.get(field))
        if old_value == new_value:
            continue
        entries.append(
            AuditEntry(
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=action.value,
                changed_by=str(actor_id),
                field=field,
                old_value=old_value,
                new_value=new_value,
            )
        )

    return entries


def status_change(
    entity_type: str,
    entity_id: UUID,
    actor_id: UUID,
    action: AuditAction,
    old_status: Any,
    new_status: Any,
    field: str = "status",
) -> AuditEntry:
    """Audit entry for a single workflow field change."""
    return AuditEntry(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action.value,
        changed_by=str(actor_id),
        field=field,
        old_value=stringify(old_status),
        new_value=stringify(new_status),
    )


class AuditLogger:
    """Append-only audit log writer and reader.

    Write methods never raise: a failed audit insert is rolled back and
    logged, and the caller carries on.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, entry: AuditEntry) -> int:
        """Insert a single audit entry."""
        return await self.record_batch([entry])

    async def record_batch(self, entries: Iterable[AuditEntry]) -> int:
        """Insert a precomputed list of entries in one operation."""
        entries = list(entries)
        if not entries:
            return 0

        try:
            self.db.add_all([self._to_row(entry) for entry in entries])
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[AUDIT] Failed to log {len(entries)} audit entries: {e}")
            return 0

        logger.debug(f"[AUDIT] Logged {len(entries)} entries for {entries[0].entity_type}:{entries[0].entity_id}")
        return len(entries)

    async def record_field_changes(
        self,
        entity_type: str,
        entity_id: UUID,
        old: Mapping[str, Any],
        new: Mapping[str, Any],
        actor_id: UUID,
        action: AuditAction = AuditAction.UPDATE,
    ) -> int:
        """Diff two records and log every changed field. Returns rows written."""
        entries = generate_field_changes(entity_type, entity_id, old, new, actor_id, action)
        return await self.record_batch(entries)

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[dict[str, Any]]:
        """Audit history of one record, newest first."""
        result = await self.db.execute(
            select(AuditLog, User.full_name)
            .outerjoin(User, AuditLog.changed_by == User.id)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.timestamp.desc())
        )
        return [self._serialize(row[0], row[1]) for row in result.all()]

    async def search(
        self,
        entity_type: Optional[str] = None,
        user_id: Optional[UUID] = None,
        action: Optional[AuditAction] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Filtered audit log across all records (administrators)."""
        conditions = []
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if user_id:
            conditions.append(AuditLog.changed_by == user_id)
        if action:
            conditions.append(AuditLog.action == action)
        if start_date:
            conditions.append(AuditLog.timestamp >= start_date)
        if end_date:
            conditions.append(AuditLog.timestamp <= end_date)

        total = await self.db.scalar(
            select(func.count(AuditLog.id)).where(*conditions)
        ) or 0

        result = await self.db.execute(
            select(AuditLog, User.full_name)
            .outerjoin(User, AuditLog.changed_by == User.id)
            .where(*conditions)
            .order_by(AuditLog.timestamp.desc())
            .limit(limit)
            .offset(offset)
        )
        return [self._serialize(row[0], row[1]) for row in result.all()], total

    @staticmethod
    def _to_row(entry: AuditEntry) -> AuditLog:
        return AuditLog(
            entity_type=entry.entity_type,
            entity_id=UUID(entry.entity_id),
            action=AuditAction(entry.action),
            field=entry.field,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=UUID(entry.changed_by),
        )

    @staticmethod
    def _serialize(log: AuditLog, changed_by_name: Optional[str]) -> dict[str, Any]:
        return {
            "id": log.id,
            "entity_type": log.entity_type,
            "entity_id": log.entity_id,
            "action": log.action,
            "field": log.field,
            "old_value": log.old_value,
            "new_value": log.new_value,
            "changed_by": log.changed_by,
            "changed_by_name": changed_by_name or "Unknown User",
            "timestamp": log.timestamp,
        }
