"""Customer (property owner) model."""

from typing import Optional

from sqlalchemy import String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base
from lms.models.enums import CustomerType
from lms.models.mixins import WorkflowMixin


class Customer(WorkflowMixin, Base):
    """A property owner captured through the intake forms."""

    __tablename__ = "customers"

    customer_type: Mapped[CustomerType] = mapped_column(
        SQLEnum(CustomerType),
        nullable=False,
        index=True,
    )

    # Name shown in lists and the review queue (person name, business name, ...)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    national_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
