"""
Readiness scoring.

A readiness score is a weighted completeness percentage. Each check carries a
weight and contributes all of it only when fully met (no partial credit).
Two profiles exist: a lenient draft profile stored after every mutation and a
strict publish-gate profile consulted by the publish action.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Literal

from app.core.config import settings


Profile = Literal["draft", "publish"]

_MIN_PRICE_FIELD = {
    "for_sale": "price_from",
    "for_rent": "monthly_rent_from",
    "auction": "starting_bid_from",
}


@dataclass(frozen=True)
class ReadinessInput:
    """The hydrated view of a development the scorer needs (parent + active unit count)."""
    name: str | None = None
    development_type: str | None = None
    transaction_type: str = "for_sale"
    description: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    amenities: tuple[str, ...] = ()
    media: tuple[dict[str, Any], ...] = ()
    active_unit_types: int = 0
    min_price: Decimal | None = None

    @classmethod
    def from_development(cls, dev: Any, unit_types: Iterable[Any] = ()) -> "ReadinessInput":
        transaction_type = dev.transaction_type or "for_sale"
        return cls(
            name=dev.name,
            development_type=dev.development_type,
            transaction_type=transaction_type,
            description=dev.description,
            address=dev.address,
            city=dev.city,
            province=dev.province,
            latitude=dev.latitude,
            longitude=dev.longitude,
            amenities=tuple(dev.amenities or ()),
            media=tuple(dev.media or ()),
            active_unit_types=sum(1 for u in unit_types if u.is_active),
            min_price=getattr(dev, _MIN_PRICE_FIELD.get(transaction_type, "price_from")),
        )

    def images(self, category: str | None = None) -> list[dict[str, Any]]:
        return [
            m for m in self.media
            if m.get("type", "image") == "image" and (category is None or m.get("category") == category)
        ]


@dataclass(frozen=True)
class Check:
    key: str
    section: str
    weight: int
    required: bool
    passed: Callable[[ReadinessInput], bool]
    missing: Callable[[ReadinessInput], list[str]]


@dataclass(frozen=True)
class ReadinessResult:
    profile: str
    score: int
    threshold: int
    missing: dict[str, list[str]] = field(default_factory=dict)
    recommended: list[str] = field(default_factory=list)
    checks: dict[str, bool] = field(default_factory=dict)
    required_passed: bool = True

    @property
    def can_publish(self) -> bool:
        return self.score >= self.threshold and self.required_passed

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "score": self.score,
            "threshold": self.threshold,
            "canPublish": self.can_publish,
            "missing": self.missing,
            "recommended": self.recommended,
            "checks": self.checks,
        }


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _has_price(r: ReadinessInput) -> bool:
    return r.min_price is not None and r.min_price > 0


def _missing_fields(r: ReadinessInput, *names: str) -> list[str]:
    return [n for n in names if _blank(getattr(r, n))]


def _at_least(n: int, what: str) -> str:
    return f"at least {n} {what}"


def _draft_checks() -> list[Check]:
    images, amenities = settings.draft_min_images, settings.draft_min_amenities
    return [
        Check("identity", "identity", 20, False,
              lambda r: not _blank(r.name),
              lambda r: _missing_fields(r, "name")),
        Check("location", "location", 20, False,
              lambda r: not _blank(r.city) and not _blank(r.province),
              lambda r: _missing_fields(r, "city", "province")),
        Check("media", "media", 20, False,
              lambda r: len(r.images()) >= images,
              lambda r: [_at_least(images, "image")]),
        Check("amenities", "amenities", 20, False,
              lambda r: len(r.amenities) >= amenities,
              lambda r: [_at_least(amenities, "amenity")]),
        Check("pricing", "pricing", 20, False,
              _has_price,
              lambda r: ["price"]),
    ]


def _publish_pricing_missing(r: ReadinessInput) -> list[str]:
    out = []
    if r.development_type != "land" and r.active_unit_types < 1:
        out.append(_at_least(1, "active unit type"))
    if not _has_price(r):
        out.append("price")
    return out


def _publish_checks() -> list[Check]:
    gallery, amenities = settings.publish_min_gallery_images, settings.publish_min_amenities
    return [
        Check("identity", "identity", 20, True,
              lambda r: not _blank(r.name) and not _blank(r.development_type),
              lambda r: _missing_fields(r, "name", "development_type")),
        Check("location", "location", 20, True,
              lambda r: not _blank(r.city) and not _blank(r.province),
              lambda r: _missing_fields(r, "city", "province")),
        Check("hero", "media", 10, True,
              lambda r: len(r.images("hero")) >= 1,
              lambda r: ["hero image"]),
        Check("gallery", "media", 10, False,
              lambda r: len(r.images("gallery")) >= gallery,
              lambda r: [_at_least(gallery, "gallery images")]),
        Check("amenities", "amenities", 20, False,
              lambda r: len(r.amenities) >= amenities,
              lambda r: [_at_least(amenities, "amenities")]),
        Check("pricing", "pricing", 20, True,
              lambda r: not _publish_pricing_missing(r),
              _publish_pricing_missing),
    ]


def _recommended(r: ReadinessInput) -> list[str]:
    out = []
    if _blank(r.description) or len(r.description.strip()) < settings.min_description_chars:
        out.append(f"description of at least {settings.min_description_chars} characters")
    if _blank(r.address):
        out.append("street address")
    if r.latitude is None or r.longitude is None:
        out.append("map coordinates")
    return out


def score(record: ReadinessInput, profile: Profile = "draft") -> ReadinessResult:
    checks = _publish_checks() if profile == "publish" else _draft_checks()

    total = 0
    missing: dict[str, list[str]] = {}
    results: dict[str, bool] = {}
    required_passed = True
    for check in checks:
        ok = check.passed(record)
        results[check.key] = ok
        if ok:
            total += check.weight
            continue
        if check.required:
            required_passed = False
        missing.setdefault(check.section, []).extend(check.missing(record))

    return ReadinessResult(
        profile=profile,
        score=total,
        threshold=settings.publish_min_readiness if profile == "publish" else 0,
        missing=missing,
        recommended=_recommended(record),
        checks=results,
        required_passed=required_passed,
    )
