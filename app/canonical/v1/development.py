from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel, to_snake
from pydantic_core import PydanticCustomError

from app.canonical.v1.enums import allowed_values, lookup
from app.services.parking import parse_legacy_parking


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _numeric_text(v: Any) -> Any:
    # "1 250 000" / "1,250,000" -> "1250000"
    if isinstance(v, str):
        v = v.replace(" ", "").replace("\u00a0", "").replace(",", "")
        return v or None
    return v


def _coerce_list(v: Any) -> Any:
    """
    Array fields arrive as a list, a JSON array string or a comma-separated string.
    Returns a de-duplicated list of trimmed strings (first occurrence wins).
    """
    if v is None:
        return []
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return []
        if s.startswith("["):
            try:
                v = json.loads(s)
            except ValueError:
                v = s.strip("[]").split(",")
        else:
            v = s.split(",")
    if not isinstance(v, (list, tuple)):
        return v

    out: list[str] = []
    for item in v:
        if item is None:
            continue
        text = str(item).strip().strip('"').strip()
        if text and text not in out:
            out.append(text)
    return out


def _canonical_enum(namespace: str, v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, (list, tuple)):
        v = v[0] if v else None
        if v is None:
            return None
    found = lookup(namespace, str(v))
    if found is None:
        allowed = allowed_values(namespace)
        raise PydanticCustomError(
            "unknown_enum",
            "'{value}' is not a valid {namespace}; expected one of: {allowed}",
            {"value": str(v), "namespace": namespace, "allowed": ", ".join(allowed)},
        )
    return found


def _aware(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class WizardModel(BaseModel):
    """
    Base for wizard payloads: camelCase on the wire, snake_case in storage.
    Unknown keys (UI scratch state such as `_ui`, `tempId`) are ignored.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def blank_strings(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: _blank_to_none(v) for k, v in data.items()}
        return data


class MediaItemV1(WizardModel):
    """A committed media reference (the stored-object URL comes from the media store)."""
    id: str | None = Field(default=None, max_length=80)
    url: HttpUrl
    type: str = "image"
    category: str = "gallery"
    order: int | None = Field(default=None, ge=0)
    caption: str | None = Field(default=None, max_length=500)
    mime_type: str | None = Field(default=None, max_length=100)

    @field_validator("type", mode="before")
    @classmethod
    def canonical_type(cls, v: Any) -> Any:
        return _canonical_enum("media_type", v) or "image"

    @field_validator("category", mode="before")
    @classmethod
    def canonical_category(cls, v: Any) -> Any:
        return _canonical_enum("media_category", v) or "gallery"

    @field_serializer("url")
    def url_as_text(self, v: HttpUrl) -> str:
        return str(v)


class UnitTypeDraftV1(WizardModel):
    """
    One unit type variant as edited in the wizard.

    Structured parking (kind/bays/garage layout) is the only parking input that
    is persisted; a legacy `parking` string is translated into it when the
    structured fields are absent.
    """
    id: str | None = Field(default=None, max_length=80)
    name: str | None = Field(default=None, max_length=255)
    label: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=10_000)

    bedrooms: int | None = Field(default=None, ge=0, le=100)
    bathrooms: Decimal | None = Field(default=None, ge=0, max_digits=3, decimal_places=1)
    unit_size: int | None = Field(default=None, ge=0)
    yard_size: int | None = Field(default=None, ge=0)

    base_price_from: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    base_price_to: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    monthly_rent_from: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    monthly_rent_to: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    starting_bid: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    reserve_price: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    auction_start_date: datetime | None = None
    auction_end_date: datetime | None = None

    parking_kind: str = "none"
    parking_bays: int = Field(default=0, ge=0, le=50)
    garage_layout: str | None = None

    features: Any = None
    finishes: Any = None
    media: list[MediaItemV1] = Field(default_factory=list)

    total_units: int | None = Field(default=None, ge=0)
    available_units: int | None = Field(default=None, ge=0)
    is_active: bool = True
    display_order: int | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def legacy_inputs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        has_structured = any(k in data for k in ("parkingKind", "parking_kind"))
        legacy = data.pop("parking", None)
        if not has_structured and legacy is not None:
            parsed = parse_legacy_parking(legacy)
            data["parkingKind"] = parsed.kind
            data.setdefault("parkingBays", parsed.bays)

        for legacy_key, key in (("priceFrom", "basePriceFrom"), ("priceTo", "basePriceTo")):
            value = data.pop(legacy_key, None)
            if value is not None and data.get(key) is None and data.get(to_snake(key)) is None:
                data[key] = value
        return data

    @field_validator(
        "bedrooms", "bathrooms", "unit_size", "yard_size",
        "base_price_from", "base_price_to", "monthly_rent_from", "monthly_rent_to",
        "starting_bid", "reserve_price", "parking_bays", "total_units", "available_units",
        mode="before",
    )
    @classmethod
    def numeric_text(cls, v: Any) -> Any:
        return _numeric_text(v)

    @field_validator("parking_kind", mode="before")
    @classmethod
    def canonical_parking_kind(cls, v: Any) -> Any:
        return _canonical_enum("parking_kind", v) or "none"

    @field_validator("parking_bays", mode="before")
    @classmethod
    def bays_default(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("garage_layout", mode="before")
    @classmethod
    def canonical_garage_layout(cls, v: Any) -> Any:
        return _canonical_enum("garage_layout", v)

    @field_validator("auction_start_date", "auction_end_date")
    @classmethod
    def utc_dates(cls, v: datetime | None) -> datetime | None:
        return _aware(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def active_default(cls, v: Any) -> Any:
        return True if v is None else v

    @model_validator(mode="after")
    def parking_consistency(self) -> "UnitTypeDraftV1":
        if self.parking_kind == "none":
            self.parking_bays = 0
            self.garage_layout = None
        elif self.parking_bays == 0:
            self.parking_bays = 1
        if self.parking_kind != "garage":
            self.garage_layout = None
        return self


class DevelopmentDraftV1(WizardModel):
    """
    Wizard state for a development record.

    Every field is optional: drafts are saved half-complete and the publish
    gate (readiness) decides what is required, not this model.
    """
    name: str | None = Field(default=None, max_length=255)
    tagline: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=20_000)

    development_type: str | None = None
    transaction_type: str | None = None
    marketing_status: str | None = None
    construction_phase: str | None = None
    nature: str | None = None
    ownership_type: str | None = None
    completion_date: date | None = None

    address: str | None = Field(default=None, max_length=500)
    suburb: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    latitude: Decimal | None = Field(default=None, ge=-90, le=90)
    longitude: Decimal | None = Field(default=None, ge=-180, le=180)
    show_house_address: bool | None = None

    amenities: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    media: list[MediaItemV1] = Field(default_factory=list)

    monthly_levy_from: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    monthly_levy_to: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    rates_from: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    rates_to: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    transfer_costs_included: bool | None = None

    # Owner-supplied only for land without unit types; otherwise derived
    price_from: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    price_to: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    total_units: int | None = Field(default=None, ge=0)
    available_units: int | None = Field(default=None, ge=0)

    unit_types: list[UnitTypeDraftV1] | None = None

    @field_validator(
        "development_type", "transaction_type", "marketing_status",
        "construction_phase", "nature", "ownership_type",
        mode="before",
    )
    @classmethod
    def canonical_enums(cls, v: Any, info: ValidationInfo) -> Any:
        return _canonical_enum(info.field_name, v)

    @field_validator("amenities", "highlights", "features", mode="before")
    @classmethod
    def arrays(cls, v: Any) -> Any:
        return _coerce_list(v)

    @field_validator("media", mode="before")
    @classmethod
    def media_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator(
        "latitude", "longitude",
        "monthly_levy_from", "monthly_levy_to", "rates_from", "rates_to",
        "price_from", "price_to", "total_units", "available_units",
        mode="before",
    )
    @classmethod
    def numeric_text(cls, v: Any) -> Any:
        return _numeric_text(v)