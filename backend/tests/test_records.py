"""Tests for record creation, editing and queries."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from lms.core.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from lms.models.audit import ActivityLog, AuditLog
from lms.models.enums import (
    ActivityAction, AuditAction, CustomerType, EntityStatus, EntityType, OccupancyType, PropertyType,
)
from lms.services.records import RecordService, days_pending

from conftest import make_customer, make_property


def test_days_pending():
    now = datetime(2025, 5, 10, 12, 0)
    assert days_pending(None, now) == 0
    assert days_pending(now, now) == 0
    assert days_pending(now - timedelta(hours=1), now) == 1
    assert days_pending(now - timedelta(days=2), now) == 2
    assert days_pending(now + timedelta(minutes=5), now) == 0


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_customer(self, db, inputter):
        service = RecordService(db)
        year = datetime.utcnow().year

        first = await service.create_customer(
            {"customer_type": CustomerType.BUSINESS, "display_name": "Hormuud Traders", "email": None},
            inputter.id,
        )
        second = await service.create_customer(
            {"customer_type": CustomerType.PERSON, "display_name": "Faadumo Hassan"},
            inputter.id,
        )

        assert first.status == EntityStatus.DRAFT
        assert first.created_by == inputter.id
        assert first.reference_id == f"CUS-{year}-000001"
        assert second.reference_id == f"CUS-{year}-000002"

        activity = (await db.execute(
            select(ActivityLog).where(ActivityLog.entity_id == first.id)
        )).scalar_one()
        assert activity.action == ActivityAction.CREATED
        assert activity.metadata_ == {"reference_id": first.reference_id, "customer_type": "BUSINESS"}

        audit = (await db.execute(
            select(AuditLog).where(AuditLog.entity_id == first.id)
        )).scalars().all()
        fields = {a.field: a.new_value for a in audit}
        assert all(a.action == AuditAction.CREATE for a in audit)
        assert fields["display_name"] == "Hormuud Traders"
        assert fields["status"] == "DRAFT"
        assert "email" not in fields

    @pytest.mark.asyncio
    async def test_create_property_uses_district_prefix(self, db, inputter):
        prop = await RecordService(db).create_property(
            {"district_code": "hrg", "property_type": PropertyType.COMMERCIAL, "address": "Wadada Xorriyadda"},
            inputter.id,
        )

        assert prop.district_code == "HRG"
        assert prop.reference_id == f"HRG-{datetime.utcnow().year}-000001"
        assert prop.status == EntityStatus.DRAFT

    @pytest.mark.asyncio
    async def test_create_property_checks_owner(self, db, inputter):
        import uuid

        with pytest.raises(ValidationError, match="Owner customer not found"):
            await RecordService(db).create_property(
                {"district_code": "MOG", "owner_customer_id": uuid.uuid4()}, inputter.id
            )

    @pytest.mark.asyncio
    async def test_viewer_cannot_create(self, db, viewer):
        with pytest.raises(Forbidden):
            await RecordService(db).create_customer(
                {"customer_type": CustomerType.PERSON, "display_name": "Nobody"}, viewer.id
            )

    @pytest.mark.asyncio
    async def test_tax_assessment_one_per_year(self, db, inputter):
        property_id = await make_property(db, inputter)
        service = RecordService(db)
        data = {"property_id": property_id, "tax_year": 2025, "assessed_amount": Decimal("900.50")}

        assessment = await service.create_tax_assessment(data, inputter.id)
        assert assessment.reference_id == f"TAX-{datetime.utcnow().year}-000001"
        assert assessment.occupancy_type == OccupancyType.OWNER_OCCUPIED
        assert assessment.is_archived is False

        with pytest.raises(ValidationError, match="already exists"):
            await service.create_tax_assessment(data, inputter.id)

    @pytest.mark.asyncio
    async def test_tax_assessment_needs_property(self, db, inputter):
        import uuid

        with pytest.raises(NotFound):
            await RecordService(db).create_tax_assessment(
                {"property_id": uuid.uuid4(), "tax_year": 2025, "assessed_amount": Decimal("1")},
                inputter.id,
            )


class TestUpdate:
    @pytest.mark.asyncio
    async def test_edit_draft_records_audit(self, db, inputter):
        customer_id = await make_customer(db, inputter)

        customer = await RecordService(db).update_entity(
            EntityType.CUSTOMER, customer_id, {"display_name": "Faadumo H. Hassan", "phone": None}, inputter.id
        )

        assert customer.display_name == "Faadumo H. Hassan"
        assert customer.status == EntityStatus.DRAFT
        audit = (await db.execute(
            select(AuditLog).where(AuditLog.entity_id == customer_id)
        )).scalars().all()
        assert [(a.field, a.old_value, a.new_value) for a in audit] == [
            ("display_name", "Faadumo Hassan", "Faadumo H. Hassan"),
        ]
        activity = (await db.execute(
            select(ActivityLog).where(ActivityLog.entity_id == customer_id)
        )).scalar_one()
        assert activity.metadata_["changed_fields"] == ["display_name"]

    @pytest.mark.asyncio
    async def test_no_changes_is_a_no_op(self, db, inputter):
        customer_id = await make_customer(db, inputter)

        await RecordService(db).update_entity(
            EntityType.CUSTOMER, customer_id, {"display_name": "Faadumo Hassan"}, inputter.id
        )

        assert (await db.execute(select(ActivityLog))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_edit_rejected_returns_to_draft(self, db, inputter):
        property_id = await make_property(db, inputter, status=EntityStatus.REJECTED)

        prop = await RecordService(db).update_entity(
            EntityType.PROPERTY, property_id, {"land_size": 420.0}, inputter.id
        )

        assert prop.status == EntityStatus.DRAFT
        assert prop.land_size == 420.0

    @pytest.mark.asyncio
    async def test_approved_records_are_locked(self, db, inputter, admin):
        customer_id = await make_customer(db, inputter, status=EntityStatus.APPROVED, approved_by=admin.id)

        with pytest.raises(InvalidTransition):
            await RecordService(db).update_entity(
                EntityType.CUSTOMER, customer_id, {"notes": "late edit"}, admin.id
            )

    @pytest.mark.asyncio
    async def test_only_creator_or_admin_edits(self, db, inputter, other_inputter, admin):
        customer_id = await make_customer(db, inputter)
        service = RecordService(db)

        with pytest.raises(Forbidden):
            await service.update_entity(EntityType.CUSTOMER, customer_id, {"notes": "x"}, other_inputter.id)

        customer = await service.update_entity(EntityType.CUSTOMER, customer_id, {"notes": "checked"}, admin.id)
        assert customer.notes == "checked"

    @pytest.mark.asyncio
    async def test_workflow_fields_not_editable(self, db, inputter):
        customer_id = await make_customer(db, inputter)

        with pytest.raises(ValidationError, match="status"):
            await RecordService(db).update_entity(
                EntityType.CUSTOMER, customer_id, {"status": EntityStatus.APPROVED}, inputter.id
            )


class TestQueries:
    @pytest.mark.asyncio
    async def test_review_queue_oldest_first(self, db, inputter, approver):
        now = datetime(2025, 5, 10, 12, 0)
        await make_customer(
            db, inputter, status=EntityStatus.SUBMITTED, submitted_at=now - timedelta(days=2)
        )
        property_id = await make_property(
            db, inputter, status=EntityStatus.SUBMITTED, submitted_at=now - timedelta(days=5)
        )
        await make_customer(db, inputter, reference_id="CUS-2025-000002")

        queue = await RecordService(db).review_queue(now=now)

        assert queue["pagination"]["total"] == 2
        first, second = queue["data"]
        assert first["id"] == property_id
        assert first["entity_type"] == EntityType.PROPERTY
        assert first["days_pending"] == 5
        assert first["submitted_by_name"] == inputter.full_name
        assert second["entity_type"] == EntityType.CUSTOMER
        assert second["title"] == "Faadumo Hassan"
        assert second["days_pending"] == 2

        only_customers = await RecordService(db).review_queue(entity_type=EntityType.CUSTOMER, now=now)
        assert [item["entity_type"] for item in only_customers["data"]] == [EntityType.CUSTOMER]

    @pytest.mark.asyncio
    async def test_list_customers_filters(self, db, inputter):
        await make_customer(db, inputter)
        await make_customer(db, inputter, status=EntityStatus.SUBMITTED, reference_id="CUS-2025-000002")

        service = RecordService(db)
        submitted = await service.list_customers(status=EntityStatus.SUBMITTED)
        assert [c.reference_id for c in submitted["data"]] == ["CUS-2025-000002"]

        found = await service.list_customers(search="faadumo")
        assert found["pagination"]["total"] == 2

        paged = await service.list_customers(page=2, limit=1)
        assert len(paged["data"]) == 1
        assert paged["pagination"]["total_pages"] == 2
