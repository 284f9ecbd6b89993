"""In-app notification dispatch and inbox queries."""

import logging
import math
from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.errors import Forbidden, NotFound
from lms.models.enums import EntityType, NotificationFilter, UserRole
from lms.models.notification import Notification
from lms.models.user import User

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


class NotificationService:
    """Creates notification rows and serves the recipient's inbox."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        recipient_ids: Iterable[UUID],
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: UUID,
        link: Optional[str] = None,
    ) -> int:
        """Insert one notification per distinct recipient.

        Failures are logged and swallowed; returns the number of rows written.
        """
        recipients = list(dict.fromkeys(r for r in recipient_ids if r is not None))
        if not recipients:
            return 0

        try:
            self.db.add_all([
                Notification(
                    user_id=recipient_id,
                    title=title,
                    message=message,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    link=link,
                )
                for recipient_id in recipients
            ])
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[NOTIFY] Failed to create '{title}' for {len(recipients)} users: {e}")
            return 0

        logger.info(f"[NOTIFY] '{title}' sent to {len(recipients)} users")
        return len(recipients)

    async def active_user_ids(self, roles: Iterable[UserRole]) -> list[UUID]:
        """Ids of every active user holding one of ``roles``."""
        result = await self.db.execute(
            select(User.id).where(User.role.in_(list(roles)), User.is_active.is_(True))
        )
        return list(result.scalars().all())

    async def notify_roles(
        self,
        roles: Iterable[UserRole],
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: UUID,
        link: Optional[str] = None,
    ) -> int:
        """Notify every active user with one of ``roles``."""
        recipients = await self.active_user_ids(roles)
        return await self.notify(recipients, title, message, entity_type, entity_id, link)

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        """Mark one of the recipient's notifications as read (no-op if already read)."""
        notification = await self.db.get(Notification, notification_id)
        if not notification:
            raise NotFound("Notification not found")
        if notification.user_id != recipient_id:
            raise Forbidden("You can only update your own notifications")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            await self.db.commit()
        return notification

    async def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark every unread notification of the recipient as read."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0

    async def unread_count(self, recipient_id: UUID) -> int:
        return await self.db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == recipient_id,
                Notification.is_read.is_(False),
            )
        ) or 0

    async def list(
        self,
        recipient_id: UUID,
        filter: NotificationFilter = NotificationFilter.ALL,
        page: int = 1,
        limit: int = 50,
        recent: bool = False,
    ) -> dict[str, Any]:
        """Inbox page, newest first, with the unread count."""
        conditions = [Notification.user_id == recipient_id]
        if filter == NotificationFilter.UNREAD:
            conditions.append(Notification.is_read.is_(False))
        elif filter == NotificationFilter.READ:
            conditions.append(Notification.is_read.is_(True))

        query = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id)
        )
        if recent:
            query = query.limit(RECENT_LIMIT)
        else:
            query = query.limit(limit).offset((page - 1) * limit)

        result = await self.db.execute(query)
        notifications = list(result.scalars().all())

        pagination = None
        if not recent:
            total = await self.db.scalar(
                select(func.count(Notification.id)).where(*conditions)
            ) or 0
            pagination = {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            }

        return {
            "data": notifications,
            "unread_count": await self.unread_count(recipient_id),
            "pagination": pagination,
        }
