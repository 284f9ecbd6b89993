"""AGO sync retry schedule."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Text, Uuid, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base
from lms.models.enums import SyncRetryStatus


class SyncRetry(Base):
    """One scheduled retry of a failed ArcGIS Online sync.

    A row is inserted for every failed attempt that still has retry budget;
    the sweep claims due PENDING rows and moves them to SUCCESS or FAILED.
    """

    __tablename__ = "ago_sync_retries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Number of the attempt that failed and caused this retry
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_attempt_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    next_retry_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[SyncRetryStatus] = mapped_column(
        SQLEnum(SyncRetryStatus),
        default=SyncRetryStatus.PENDING,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("ix_ago_sync_retries_due", "status", "next_retry_at"),
        Index("ix_ago_sync_retries_property", "property_id", "created_at"),
    )
