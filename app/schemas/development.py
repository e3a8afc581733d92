from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.approval_queue import ApprovalQueueEntry
from app.models.development import Development
from app.models.unit_type import UnitType
from app.schemas.common import FieldError
from app.services.readiness import ReadinessResult
from app.services.unit_types import display_price_range


class OwnerRef(BaseModel):
    kind: str
    id: str


class UnitTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str | None
    label: str | None
    description: str | None
    bedrooms: int | None
    bathrooms: Decimal | None
    unit_size: int | None
    yard_size: int | None

    base_price_from: Decimal | None
    base_price_to: Decimal | None
    monthly_rent_from: Decimal | None
    monthly_rent_to: Decimal | None
    starting_bid: Decimal | None
    reserve_price: Decimal | None
    auction_start_date: datetime | None
    auction_end_date: datetime | None
    price_display: dict[str, Decimal] | None = None

    parking_kind: str
    parking_bays: int
    garage_layout: str | None
    legacy_parking: str
    legacy_parking_type: str | None

    features: Any = None
    finishes: Any = None
    media: list[dict] = Field(default_factory=list)

    total_units: int | None
    available_units: int | None
    is_active: bool
    display_order: int

    @classmethod
    def from_row(cls, row: UnitType) -> "UnitTypeOut":
        out = cls.model_validate(row)
        out.price_display = display_price_range(row.base_price_from, row.base_price_to)
        return out


class DevelopmentSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner: OwnerRef
    name: str | None
    city: str | None
    province: str | None
    development_type: str | None
    transaction_type: str
    approval_status: str
    is_published: bool
    readiness_score: int
    price_display: dict[str, Decimal] | None = None
    version: int
    updated_at: datetime | None

    @classmethod
    def from_row(cls, dev: Development) -> "DevelopmentSummaryOut":
        return cls.model_validate(_with_owner(dev))


class DevelopmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner: OwnerRef

    name: str | None
    tagline: str | None
    description: str | None
    development_type: str | None
    transaction_type: str
    marketing_status: str | None
    construction_phase: str | None
    nature: str | None
    ownership_type: str | None
    completion_date: date | None

    address: str | None
    suburb: str | None
    city: str | None
    province: str | None
    postal_code: str | None
    latitude: Decimal | None
    longitude: Decimal | None
    location_id: str | None
    show_house_address: bool

    amenities: list[str]
    highlights: list[str]
    features: list[str]
    media: list[dict]

    monthly_levy_from: Decimal | None
    monthly_levy_to: Decimal | None
    rates_from: Decimal | None
    rates_to: Decimal | None
    transfer_costs_included: bool

    price_from: Decimal | None
    price_to: Decimal | None
    monthly_rent_from: Decimal | None
    monthly_rent_to: Decimal | None
    starting_bid_from: Decimal | None
    reserve_price_from: Decimal | None
    auction_start_date: datetime | None
    auction_end_date: datetime | None
    total_units: int | None
    available_units: int | None
    price_display: dict[str, Decimal] | None = None

    approval_status: str
    is_published: bool
    published_at: datetime | None
    readiness_score: int
    rejection_reason: str | None
    version: int

    created_at: datetime | None
    updated_at: datetime | None
    created_by: str | None
    updated_by: str | None

    unit_types: list[UnitTypeOut] = Field(default_factory=list)

    @classmethod
    def from_row(cls, dev: Development, unit_types: list[UnitType] | None = None) -> "DevelopmentOut":
        out = cls.model_validate(_with_owner(dev))
        out.unit_types = [UnitTypeOut.from_row(u) for u in unit_types or []]
        return out


def _price_display(dev: Development) -> dict[str, Decimal] | None:
    if dev.transaction_type == "for_rent":
        return display_price_range(dev.monthly_rent_from, dev.monthly_rent_to)
    if dev.transaction_type == "auction":
        return display_price_range(dev.starting_bid_from, None)
    return display_price_range(dev.price_from, dev.price_to)


def _with_owner(dev: Development) -> dict[str, Any]:
    data = {c.key: getattr(dev, c.key) for c in Development.__table__.columns}
    data["owner"] = {"kind": dev.owner.kind, "id": dev.owner.id}
    data["price_display"] = _price_display(dev)
    return data


class ReadinessOut(BaseModel):
    profile: str
    score: int
    threshold: int
    can_publish: bool
    missing: dict[str, list[str]]
    recommended: list[str]
    checks: dict[str, bool]

    @classmethod
    def from_result(cls, result: ReadinessResult) -> "ReadinessOut":
        return cls(
            profile=result.profile,
            score=result.score,
            threshold=result.threshold,
            can_publish=result.can_publish,
            missing=result.missing,
            recommended=result.recommended,
            checks=result.checks,
        )


class DevelopmentSaveOut(BaseModel):
    development: DevelopmentOut
    readiness: ReadinessOut
    # normalization problems: the offending fields were dropped, the rest saved
    errors: list[FieldError] = Field(default_factory=list)


class QueueEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    development_id: str
    submission_type: str
    status: str
    auto_approved: bool
    submitted_by: str | None
    submitted_at: datetime
    resolved_at: datetime | None
    reviewer_id: str | None
    reason: str | None
    review_notes: str | None
    compliance_checks: dict | None

    @classmethod
    def from_row(cls, entry: ApprovalQueueEntry) -> "QueueEntryOut":
        return cls.model_validate(entry)


class PublishOut(BaseModel):
    development: DevelopmentOut
    submission: QueueEntryOut
    readiness: ReadinessOut
    auto_approved: bool


class ApproveIn(BaseModel):
    compliance_checks: dict[str, Any] | None = None
    notes: str | None = Field(default=None, max_length=5000)


class RejectIn(BaseModel):
    reason: str = Field(max_length=5000)


class QueueAnalyticsOut(BaseModel):
    pending: int
    processed: int
    approved: int
    auto_approved: int
    manual_approved: int
    rejected: int
    approval_rate: float
    auto_approval_rate: float
    avg_review_seconds: float | None
