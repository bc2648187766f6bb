from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin

PROPERTY_TYPES = (
    "Apartment",
    "Commercial",
    "Villa",
    "Land/Plot",
    "Agriculture Land",
    "Individual House",
    "Farmhouse",
    "Warehouse",
    "Retail Space",
    "Industrial Plot",
)
PROPERTY_STATUSES = ("Sale", "Rent", "Lease", "JV")


class Property(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(300), nullable=False)
    sqft: Mapped[float | None] = mapped_column(Float, nullable=True)
    carpet_area: Mapped[float | None] = mapped_column(Float, nullable=True)
    built_up_area: Mapped[float | None] = mapped_column(Float, nullable=True)
    # Floor details apply to apartments and individual houses only.
    unit_configuration: Mapped[str | None] = mapped_column(String(30), nullable=True)
    floor_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)
    facing: Mapped[str | None] = mapped_column(String(20), nullable=True)
    parking_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_cust_id: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    closed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
