"""Property model."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Text, Float, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base
from lms.models.enums import PropertyType, AgoSyncStatus
from lms.models.mixins import WorkflowMixin


class Property(WorkflowMixin, Base):
    """A land parcel / building registered in the municipality."""

    __tablename__ = "properties"

    district_code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        default=PropertyType.RESIDENTIAL,
        nullable=False,
    )
    owner_customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    land_size: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ArcGIS Online sync
    ago_sync_status: Mapped[AgoSyncStatus] = mapped_column(
        SQLEnum(AgoSyncStatus),
        default=AgoSyncStatus.PENDING,
        nullable=False,
        index=True,
    )
    ago_sync_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    global_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
