"""Activity (lifecycle event) logging service."""

import logging
import math
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.audit import ActivityLog
from lms.models.enums import ActivityAction, EntityType
from lms.models.user import User

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_NAME = "System"
UNKNOWN_ACTOR_NAME = "Unknown User"


class ActivityLogger:
    """Writes one row per lifecycle event and reads them back with actor names."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        action: ActivityAction,
        performed_by: Optional[UUID] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActivityLog:
        """Insert an activity entry. ``performed_by=None`` records a system action."""
        entry = ActivityLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            performed_by=performed_by,
            metadata_=metadata or {},
        )
        self.db.add(entry)
        await self.db.commit()
        logger.info(f"[ACTIVITY] {action.value} on {entity_type.value}:{entity_id}")
        return entry

    async def list_for_entity(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Paginated history of one record, newest first."""
        total = await self.db.scalar(
            select(func.count(ActivityLog.id)).where(
                ActivityLog.entity_type == entity_type,
                ActivityLog.entity_id == entity_id,
            )
        ) or 0

        result = await self.db.execute(
            select(ActivityLog, User.full_name)
            .outerjoin(User, ActivityLog.performed_by == User.id)
            .where(
                ActivityLog.entity_type == entity_type,
                ActivityLog.entity_id == entity_id,
            )
            .order_by(ActivityLog.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )

        items = [
            {
                "id": log.id,
                "action": log.action,
                "performed_by": log.performed_by,
                "performed_by_name": actor_display_name(log.performed_by, full_name),
                "timestamp": log.created_at,
                "metadata": log.metadata_ or None,
            }
            for log, full_name in result.all()
        ]

        return {
            "data": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            },
        }


def actor_display_name(performed_by: Optional[UUID], full_name: Optional[str]) -> str:
    """Name to show for an activity entry's actor."""
    if performed_by is None:
        return SYSTEM_ACTOR_NAME
    return full_name or UNKNOWN_ACTOR_NAME
