"""Tests for the workflow role policy table."""

import uuid

import pytest

from lms.models.enums import EntityStatus, EntityType, UserRole, WorkflowAction
from lms.services.policy import (
    allowed_roles,
    can_archive_draft,
    can_perform,
    unarchive_target,
)


class TestTransitionPolicy:
    @pytest.mark.parametrize("entity_type", [EntityType.CUSTOMER, EntityType.PROPERTY])
    def test_reviewers_approve_and_reject(self, entity_type):
        for action in (WorkflowAction.APPROVE, WorkflowAction.REJECT):
            assert can_perform(action, entity_type, UserRole.APPROVER)
            assert can_perform(action, entity_type, UserRole.ADMINISTRATOR)
            assert not can_perform(action, entity_type, UserRole.INPUTTER)

    def test_archive_rights_differ_per_entity(self):
        assert can_perform(WorkflowAction.ARCHIVE, EntityType.PROPERTY, UserRole.APPROVER)
        assert not can_perform(WorkflowAction.ARCHIVE, EntityType.CUSTOMER, UserRole.APPROVER)
        assert not can_perform(WorkflowAction.ARCHIVE, EntityType.TAX_ASSESSMENT, UserRole.APPROVER)
        assert can_perform(WorkflowAction.ARCHIVE, EntityType.CUSTOMER, UserRole.ADMINISTRATOR)
        assert can_perform(WorkflowAction.UNARCHIVE, EntityType.TAX_ASSESSMENT, UserRole.ADMINISTRATOR)

    def test_owner_can_submit_and_edit(self):
        owner = uuid.uuid4()
        assert can_perform(WorkflowAction.SUBMIT, EntityType.CUSTOMER, UserRole.INPUTTER, owner, owner)
        assert can_perform(WorkflowAction.EDIT, EntityType.PROPERTY, UserRole.INPUTTER, owner, owner)
        assert not can_perform(
            WorkflowAction.SUBMIT, EntityType.CUSTOMER, UserRole.INPUTTER, owner, uuid.uuid4()
        )

    def test_ownership_does_not_grant_review_actions(self):
        owner = uuid.uuid4()
        assert not can_perform(WorkflowAction.APPROVE, EntityType.CUSTOMER, UserRole.INPUTTER, owner, owner)

    def test_administrator_submits_any_record(self):
        assert can_perform(
            WorkflowAction.SUBMIT, EntityType.PROPERTY, UserRole.ADMINISTRATOR, uuid.uuid4(), uuid.uuid4()
        )

    def test_viewer_never_allowed(self):
        owner = uuid.uuid4()
        for action in WorkflowAction:
            assert not can_perform(action, EntityType.PROPERTY, UserRole.VIEWER, owner, owner)

    def test_missing_role_denied(self):
        assert not can_perform(WorkflowAction.APPROVE, EntityType.CUSTOMER, None)

    def test_sync_is_admin_only(self):
        assert allowed_roles(WorkflowAction.SYNC, EntityType.PROPERTY) == frozenset({UserRole.ADMINISTRATOR})
        assert allowed_roles(WorkflowAction.SYNC, EntityType.CUSTOMER) == frozenset()


class TestArchiveHelpers:
    def test_draft_archive_requires_admin(self):
        assert can_archive_draft(UserRole.ADMINISTRATOR)
        assert not can_archive_draft(UserRole.APPROVER)

    def test_unarchive_target(self):
        assert unarchive_target(uuid.uuid4()) == EntityStatus.APPROVED
        assert unarchive_target(None) == EntityStatus.DRAFT
