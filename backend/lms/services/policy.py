"""Role policy for workflow transitions.

All role checks of the workflow engine go through this table. Archive rights
differ by record type: customers and tax assessments are ADMINISTRATOR-only while
properties may also be archived by APPROVERs.
"""

from typing import Optional
from uuid import UUID

from lms.models.enums import EntityStatus, EntityType, UserRole, WorkflowAction

_REVIEWERS = frozenset({UserRole.APPROVER, UserRole.ADMINISTRATOR})
_ADMINS = frozenset({UserRole.ADMINISTRATOR})
_EDITORS = frozenset({UserRole.INPUTTER, UserRole.APPROVER, UserRole.ADMINISTRATOR})

TRANSITION_POLICY: dict[tuple[WorkflowAction, EntityType], frozenset[UserRole]] = {
    # Owners may always submit/edit their own records, see OWNER_ACTIONS
    (WorkflowAction.SUBMIT, EntityType.CUSTOMER): _ADMINS,
    (WorkflowAction.SUBMIT, EntityType.PROPERTY): _ADMINS,
    (WorkflowAction.EDIT, EntityType.CUSTOMER): _ADMINS,
    (WorkflowAction.EDIT, EntityType.PROPERTY): _ADMINS,
    (WorkflowAction.APPROVE, EntityType.CUSTOMER): _REVIEWERS,
    (WorkflowAction.APPROVE, EntityType.PROPERTY): _REVIEWERS,
    (WorkflowAction.REJECT, EntityType.CUSTOMER): _REVIEWERS,
    (WorkflowAction.REJECT, EntityType.PROPERTY): _REVIEWERS,
    (WorkflowAction.ARCHIVE, EntityType.CUSTOMER): _ADMINS,
    (WorkflowAction.ARCHIVE, EntityType.PROPERTY): _REVIEWERS,
    (WorkflowAction.ARCHIVE, EntityType.TAX_ASSESSMENT): _ADMINS,
    (WorkflowAction.UNARCHIVE, EntityType.CUSTOMER): _ADMINS,
    (WorkflowAction.UNARCHIVE, EntityType.PROPERTY): _REVIEWERS,
    (WorkflowAction.UNARCHIVE, EntityType.TAX_ASSESSMENT): _ADMINS,
    (WorkflowAction.SYNC, EntityType.PROPERTY): _ADMINS,
}

# Actions the record's creator may perform regardless of role
OWNER_ACTIONS = frozenset({WorkflowAction.SUBMIT, WorkflowAction.EDIT})

# Archiving a DRAFT record (and restoring one to DRAFT) is reserved to administrators
DRAFT_ARCHIVE_ROLES = _ADMINS

CREATE_ROLES = _EDITORS


def allowed_roles(action: WorkflowAction, entity_type: EntityType) -> frozenset[UserRole]:
    """Roles allowed to perform ``action`` on ``entity_type`` (empty if none)."""
    return TRANSITION_POLICY.get((action, entity_type), frozenset())


def can_perform(
    action: WorkflowAction,
    entity_type: EntityType,
    role: Optional[UserRole],
    actor_id: Optional[UUID] = None,
    owner_id: Optional[UUID] = None,
) -> bool:
    """Whether an actor may perform ``action``.

    Ownership only counts for OWNER_ACTIONS; a VIEWER never passes.
    """
    if role is None or role == UserRole.VIEWER:
        return False
    if action in OWNER_ACTIONS and actor_id is not None and actor_id == owner_id:
        return True
    return role in allowed_roles(action, entity_type)


def can_archive_draft(role: Optional[UserRole]) -> bool:
    return role in DRAFT_ARCHIVE_ROLES


def unarchive_target(approved_by: Optional[UUID]) -> EntityStatus:
    """Status an archived record returns to."""
    return EntityStatus.APPROVED if approved_by else EntityStatus.DRAFT
