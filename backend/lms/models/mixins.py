"""Column mixins shared by records that go through the approval workflow."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from lms.models.enums import EntityStatus


class WorkflowMixin:
    """Status, ownership and approval columns.

    ``status`` is only ever changed by ``WorkflowService`` through a
    conditional update on its current value.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    reference_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)

    status: Mapped[EntityStatus] = mapped_column(
        SQLEnum(EntityStatus),
        default=EntityStatus.DRAFT,
        nullable=False,
        index=True,
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
