"""API tests: routing, role gates and the error envelope."""

import uuid

import pytest

from lms.models.enums import EntityStatus

from conftest import make_property


async def create_customer(client, **overrides):
    body = {"customer_type": "PERSON", "display_name": "Faadumo Hassan", **overrides}
    response = await client.post("/v1/customers", json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_requires_authentication(client):
    response = await client.get("/v1/customers")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization header"}


@pytest.mark.asyncio
async def test_customer_approval_flow(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)
    assert customer["status"] == "DRAFT"
    assert customer["reference_id"].startswith("CUS-")

    response = await client.post(f"/v1/customers/{customer['id']}/submit")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Customer submitted successfully"}

    login(staff["approver"])
    queue = (await client.get("/v1/workflow/review-queue")).json()
    assert [item["id"] for item in queue["data"]] == [customer["id"]]
    assert queue["data"][0]["submitted_by_name"] == staff["inputter"].full_name

    response = await client.post(f"/v1/customers/{customer['id']}/approve")
    assert response.status_code == 200

    login(staff["inputter"])
    inbox = (await client.get("/v1/notifications")).json()
    assert inbox["unread_count"] == 1
    assert inbox["data"][0]["title"] == "Customer Approved"

    detail = (await client.get(f"/v1/customers/{customer['id']}")).json()
    assert detail["status"] == "APPROVED"
    assert detail["approved_by"] == str(staff["approver"].id)

    history = (await client.get(f"/v1/activity-logs/customer/{customer['id']}")).json()
    assert {item["action"] for item in history["data"]} == {"CREATED", "SUBMITTED", "APPROVED"}


@pytest.mark.asyncio
async def test_review_queue_is_for_reviewers(client, login, staff):
    login(staff["inputter"])

    response = await client.get("/v1/workflow/review-queue")

    assert response.status_code == 403
    assert "APPROVER" in response.json()["error"]


@pytest.mark.asyncio
async def test_reject_requires_feedback(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)
    await client.post(f"/v1/customers/{customer['id']}/submit")

    login(staff["approver"])
    response = await client.post(f"/v1/customers/{customer['id']}/reject", json={"feedback": "no"})
    assert response.status_code == 400
    assert response.json() == {"error": "Rejection feedback is required (at least 10 characters)"}

    response = await client.post(
        f"/v1/customers/{customer['id']}/reject", json={"feedback": "Address is incomplete"}
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Customer rejected successfully"


@pytest.mark.asyncio
async def test_forbidden_transition(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)

    login(staff["other_inputter"])
    response = await client.post(f"/v1/customers/{customer['id']}/submit")

    assert response.status_code == 403
    assert response.json() == {"error": "Only the creator or an administrator can submit this customer"}


@pytest.mark.asyncio
async def test_invalid_transition(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)

    login(staff["approver"])
    response = await client.post(f"/v1/customers/{customer['id']}/approve")

    assert response.status_code == 400
    assert response.json() == {"error": "Customer must be in SUBMITTED status to approve"}


@pytest.mark.asyncio
async def test_not_found(client, login, staff):
    login(staff["viewer"])

    response = await client.get(f"/v1/customers/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "Customer not found"}


@pytest.mark.asyncio
async def test_request_validation_error(client, login, staff):
    login(staff["inputter"])

    response = await client.post("/v1/customers", json={"customer_type": "PERSON"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("display_name")


@pytest.mark.asyncio
async def test_property_archive_and_unarchive(client, login, staff, db):
    property_id = await make_property(
        db, staff["inputter"], status=EntityStatus.APPROVED, approved_by=staff["approver"].id
    )
    login(staff["approver"])

    response = await client.post(f"/v1/properties/{property_id}/archive")
    assert response.json() == {"success": True, "message": "Property archived successfully"}

    response = await client.post(f"/v1/properties/{property_id}/archive", json={"unarchive": True})
    assert response.json() == {"success": True, "message": "Property unarchived successfully"}

    detail = (await client.get(f"/v1/properties/{property_id}")).json()
    assert detail["status"] == "APPROVED"


@pytest.mark.asyncio
async def test_manual_sync_is_admin_only(client, login, staff, db):
    property_id = await make_property(
        db, staff["inputter"], status=EntityStatus.APPROVED, approved_by=staff["approver"].id
    )

    login(staff["approver"])
    response = await client.post(f"/v1/properties/{property_id}/sync")
    assert response.status_code == 403

    login(staff["admin"])
    response = await client.post(f"/v1/properties/{property_id}/sync")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["global_id"]

    retries = await client.get(f"/v1/properties/{property_id}/sync-retries")
    assert retries.json() == []


@pytest.mark.asyncio
async def test_audit_search_is_admin_only(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)

    response = await client.get("/v1/audit-logs")
    assert response.status_code == 403

    login(staff["admin"])
    response = await client.get("/v1/audit-logs", params={"entityType": "customer", "userId": str(staff["inputter"].id)})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] > 0
    assert {row["entity_id"] for row in body["data"]} == {customer["id"]}

    login(staff["viewer"])
    history = await client.get(f"/v1/audit-logs/customer/{customer['id']}")
    assert history.status_code == 200
    assert all(row["action"] == "create" for row in history.json())


@pytest.mark.asyncio
async def test_notifications_read_flow(client, login, staff):
    login(staff["inputter"])
    customer = await create_customer(client)
    await client.post(f"/v1/customers/{customer['id']}/submit")

    login(staff["approver"])
    inbox = (await client.get("/v1/notifications", params={"filter": "unread"})).json()
    assert inbox["unread_count"] == 1
    notification_id = inbox["data"][0]["id"]

    login(staff["admin"])
    response = await client.post(f"/v1/notifications/{notification_id}/read")
    assert response.status_code == 403

    login(staff["approver"])
    response = await client.post(f"/v1/notifications/{notification_id}/read")
    assert response.json()["is_read"] is True
    assert (await client.get("/v1/notifications/unread-count")).json() == {"unread_count": 0}

    login(staff["admin"])
    assert (await client.post("/v1/notifications/read-all")).json() == {"success": True, "updated": 1}


@pytest.mark.asyncio
async def test_sweep_endpoint(client, login, staff, db):
    property_id = await make_property(db, staff["inputter"], status=EntityStatus.SUBMITTED)
    login(staff["approver"])
    await client.post(f"/v1/properties/{property_id}/approve")

    response = await client.post("/v1/sync/sweep")
    assert response.status_code == 403

    login(staff["admin"])
    response = await client.post("/v1/sync/sweep")
    assert response.status_code == 200
    assert response.json()["jobs"]["completed"] == 1

    detail = (await client.get(f"/v1/properties/{property_id}")).json()
    assert detail["ago_sync_status"] == "SYNCED"
