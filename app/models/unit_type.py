from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from app.core.ids import gen_id
from app.models.base import Base, AuditMixin, JSONType


class UnitType(AuditMixin, Base):
    __tablename__ = "unit_types"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("unt"))
    development_id: Mapped[str] = mapped_column(
        String, ForeignKey("developments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[Decimal | None] = mapped_column(Numeric(3, 1), nullable=True)
    unit_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    yard_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Sale
    base_price_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    base_price_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    # Rent
    monthly_rent_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    monthly_rent_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    # Auction
    starting_bid: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    reserve_price: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    auction_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auction_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Structured parking is the source of truth; legacy_* are derived on write
    parking_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    parking_bays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    garage_layout: Mapped[str | None] = mapped_column(String(20), nullable=True)  # tandem/side_by_side
    legacy_parking: Mapped[str] = mapped_column(String(30), nullable=False, default="none")
    legacy_parking_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    features: Mapped[dict | list | None] = mapped_column(JSONType, nullable=True)
    finishes: Mapped[dict | list | None] = mapped_column(JSONType, nullable=True)
    media: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    total_units: Mapped[int | None] = mapped_column(Integer, nullable=True)
    available_units: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
