"""Outbox rows for side effects that run after a workflow transition commits."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base, JSONType
from lms.models.enums import JobStatus


class JobsOutbox(Base):
    """One pending side effect (activity entry, notification fan-out, AGO push).

    Written in the transaction that changes the record's status. A job that
    fails goes back to PENDING until ``max_attempts`` is spent, then to
    DEAD_LETTER. ``unique_scope`` keeps the same effect from being queued twice.
    """

    __tablename__ = "jobs_outbox"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    unique_scope: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)

    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus), default=JobStatus.PENDING, nullable=False, index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Not claimable before this time
    run_after: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (Index("ix_jobs_outbox_pending", "status", "run_after"),)

    def __repr__(self) -> str:
        return f"<JobsOutbox {self.type} {self.status.name if self.status else None} attempts={self.attempts}>"
