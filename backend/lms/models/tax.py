"""Tax assessment model."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base
from lms.models.enums import OccupancyType


class TaxAssessment(Base):
    """Yearly tax assessment of a property.

    Not part of the approval workflow; administrators archive it through
    ``is_archived``.
    """

    __tablename__ = "tax_assessments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    reference_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    occupancy_type: Mapped[OccupancyType] = mapped_column(
        SQLEnum(OccupancyType),
        default=OccupancyType.OWNER_OCCUPIED,
        nullable=False,
    )
    assessed_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("property_id", "tax_year", name="uq_tax_assessment_property_year"),
    )
