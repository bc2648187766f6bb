import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin

DEAL_TYPES = ("Buy", "Rent", "JV", "Investment", "Consultation")
CUSTOMER_STATUSES = ("New", "Interested", "Closed")
NOTE_TYPES = ("call", "meeting", "follow-up", "general")


class Customer(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "customers"

    cust_id: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deal_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    req: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    bhk: Mapped[str | None] = mapped_column(String(30), nullable=True)
    typology: Mapped[str | None] = mapped_column(String(60), nullable=True)
    property_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    budget: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="New", index=True)


class CustomerNote(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "customer_notes"

    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    text: Mapped[str] = mapped_column(Text, nullable=False)
    follow_up_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
