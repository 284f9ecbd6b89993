"""Tests for notifications and the activity log."""

import uuid
from unittest.mock import AsyncMock

import pytest

from lms.core.errors import Forbidden, NotFound
from lms.models.enums import ActivityAction, EntityType, NotificationFilter, UserRole
from lms.services.activity import ActivityLogger, actor_display_name
from lms.services.notifications import NotificationService


class TestNotificationService:
    @pytest.mark.asyncio
    async def test_notify_deduplicates_recipients(self, db, inputter, approver):
        entity_id = uuid.uuid4()

        written = await NotificationService(db).notify(
            [inputter.id, approver.id, inputter.id, None],
            title="Customer Approved",
            message="Your customer CUS-2025-000001 was approved",
            entity_type=EntityType.CUSTOMER,
            entity_id=entity_id,
            link=f"/customers/{entity_id}",
        )

        assert written == 2

    @pytest.mark.asyncio
    async def test_notify_nobody(self, db):
        assert await NotificationService(db).notify([], "t", "m", EntityType.PROPERTY, uuid.uuid4()) == 0

    @pytest.mark.asyncio
    async def test_insert_failure_is_swallowed(self, db, inputter, monkeypatch):
        service = NotificationService(db)
        rollback = AsyncMock()
        monkeypatch.setattr(db, "commit", AsyncMock(side_effect=RuntimeError("disk full")))
        monkeypatch.setattr(db, "rollback", rollback)

        written = await service.notify([inputter.id], "t", "m", EntityType.PROPERTY, uuid.uuid4())

        assert written == 0
        rollback.assert_awaited_once()
        db.expunge_all()

    @pytest.mark.asyncio
    async def test_notify_roles(self, db, staff):
        written = await NotificationService(db).notify_roles(
            [UserRole.APPROVER, UserRole.ADMINISTRATOR], "New Property Submitted", "m",
            EntityType.PROPERTY, uuid.uuid4(),
        )

        assert written == 2
        assert await NotificationService(db).unread_count(staff["approver"].id) == 1
        assert await NotificationService(db).unread_count(staff["inputter"].id) == 0

    @pytest.mark.asyncio
    async def test_inbox_and_read_flags(self, db, inputter):
        service = NotificationService(db)
        for n in range(7):
            await service.notify([inputter.id], f"title {n}", "m", EntityType.CUSTOMER, uuid.uuid4())

        inbox = await service.list(inputter.id)
        assert inbox["unread_count"] == 7
        assert inbox["pagination"]["total"] == 7

        recent = await service.list(inputter.id, recent=True)
        assert len(recent["data"]) == 5
        assert recent["pagination"] is None

        first = inbox["data"][0]
        marked = await service.mark_read(first.id, inputter.id)
        assert marked.is_read is True
        assert marked.read_at is not None

        unread = await service.list(inputter.id, filter=NotificationFilter.UNREAD)
        assert unread["pagination"]["total"] == 6
        read = await service.list(inputter.id, filter=NotificationFilter.READ)
        assert [n.id for n in read["data"]] == [first.id]

        assert await service.mark_all_read(inputter.id) == 6
        assert await service.unread_count(inputter.id) == 0

    @pytest.mark.asyncio
    async def test_mark_read_ownership(self, db, inputter, approver):
        service = NotificationService(db)
        await service.notify([inputter.id], "t", "m", EntityType.CUSTOMER, uuid.uuid4())
        notification = (await service.list(inputter.id))["data"][0]

        with pytest.raises(Forbidden):
            await service.mark_read(notification.id, approver.id)
        with pytest.raises(NotFound):
            await service.mark_read(uuid.uuid4(), inputter.id)


class TestActivityLogger:
    @pytest.mark.asyncio
    async def test_history_newest_first_with_names(self, db, inputter, approver):
        activity = ActivityLogger(db)
        entity_id = uuid.uuid4()
        await activity.log(EntityType.PROPERTY, entity_id, ActivityAction.CREATED, inputter.id, {"reference_id": "MOG-2025-000001"})
        await activity.log(EntityType.PROPERTY, entity_id, ActivityAction.APPROVED, approver.id)
        await activity.log(EntityType.PROPERTY, entity_id, ActivityAction.SYNCED, None, {"global_id": "{X}"})
        await activity.log(EntityType.PROPERTY, uuid.uuid4(), ActivityAction.CREATED, inputter.id)

        history = await activity.list_for_entity(EntityType.PROPERTY, entity_id)

        assert history["pagination"]["total"] == 3
        names = {item["action"]: item["performed_by_name"] for item in history["data"]}
        assert names == {
            ActivityAction.CREATED: inputter.full_name,
            ActivityAction.APPROVED: approver.full_name,
            ActivityAction.SYNCED: "System",
        }
        by_action = {item["action"]: item["metadata"] for item in history["data"]}
        assert by_action[ActivityAction.APPROVED] is None
        assert by_action[ActivityAction.CREATED] == {"reference_id": "MOG-2025-000001"}

    @pytest.mark.asyncio
    async def test_pagination(self, db, inputter):
        activity = ActivityLogger(db)
        entity_id = uuid.uuid4()
        for _ in range(3):
            await activity.log(EntityType.CUSTOMER, entity_id, ActivityAction.UPDATED, inputter.id)

        page = await activity.list_for_entity(EntityType.CUSTOMER, entity_id, page=2, limit=2)

        assert len(page["data"]) == 1
        assert page["pagination"]["total_pages"] == 2


def test_actor_display_name():
    assert actor_display_name(None, None) == "System"
    assert actor_display_name(uuid.uuid4(), None) == "Unknown User"
    assert actor_display_name(uuid.uuid4(), "Hodan Ali") == "Hodan Ali"
