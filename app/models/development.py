from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from app.canonical.v1.owner import Individual, Owner, Platform
from app.core.ids import gen_id
from app.models.base import Base, AuditMixin, JSONType


class Development(AuditMixin, Base):
    __tablename__ = "developments"
    __table_args__ = (
        # exactly one ownership reference
        CheckConstraint(
            "(developer_id IS NULL) <> (brand_profile_id IS NULL)",
            name="ck_development_single_owner",
        ),
        CheckConstraint(
            "(is_published AND approval_status = 'approved') OR (NOT is_published AND approval_status <> 'approved')",
            name="ck_development_published_iff_approved",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("dev"))

    developer_id: Mapped[str | None] = mapped_column(String, ForeignKey("owner_profiles.id"), nullable=True, index=True)
    brand_profile_id: Mapped[str | None] = mapped_column(String, ForeignKey("owner_profiles.id"), nullable=True, index=True)

    # Identity / classification
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tagline: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    development_type: Mapped[str | None] = mapped_column(String(30), nullable=True)  # residential/commercial/mixed_use/land
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False, default="for_sale")  # for_sale/for_rent/auction
    marketing_status: Mapped[str | None] = mapped_column(String(30), nullable=True)  # launching_soon/selling/sold_out
    construction_phase: Mapped[str | None] = mapped_column(String(30), nullable=True)
    nature: Mapped[str | None] = mapped_column(String(30), nullable=True)
    ownership_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Location
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    suburb: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    province: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)
    location_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    show_house_address: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Content
    amenities: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    highlights: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    features: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    # ordered [{id, url, type, category, order, caption}]
    media: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Owner-supplied costs
    monthly_levy_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    monthly_levy_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    rates_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    rates_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    transfer_costs_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Derived from unit types (owner-supplied only for land without units)
    price_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    price_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    monthly_rent_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    monthly_rent_to: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    starting_bid_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    reserve_price_from: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    auction_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auction_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_units: Mapped[int | None] = mapped_column(Integer, nullable=True)
    available_units: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Publication workflow
    approval_status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)  # draft/pending/approved/rejected
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    readiness_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def owner(self) -> Owner:
        if self.developer_id is not None:
            return Individual(self.developer_id)
        return Platform(self.brand_profile_id)

    @owner.setter
    def owner(self, value: Owner) -> None:
        if isinstance(value, Individual):
            self.developer_id, self.brand_profile_id = value.id, None
        else:
            self.developer_id, self.brand_profile_id = None, value.id
