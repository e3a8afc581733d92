from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from app.core.errors import ValidationError


OwnerKind = Literal["individual", "platform"]


@dataclass(frozen=True)
class Individual:
    """A developer party that owns its developments directly."""
    id: str
    kind: OwnerKind = "individual"


@dataclass(frozen=True)
class Platform:
    """A platform-managed brand profile (developments curated by administrators)."""
    id: str
    kind: OwnerKind = "platform"


Owner = Union[Individual, Platform]


def owner_from_refs(*, developer_id: str | None, brand_profile_id: str | None) -> Owner:
    """
    Build the ownership reference from the two wire-level fields.
    Exactly one must be set; anything else is rejected before storage is touched.
    """
    developer_id = (developer_id or "").strip() or None
    brand_profile_id = (brand_profile_id or "").strip() or None

    if developer_id and brand_profile_id:
        raise ValidationError(
            "Ownership is ambiguous: set developerId or brandProfileId, not both",
            detail={"errors": [
                {"field": "developerId", "message": "mutually exclusive with brandProfileId", "type": "owner_conflict"},
                {"field": "brandProfileId", "message": "mutually exclusive with developerId", "type": "owner_conflict"},
            ]},
        )
    if developer_id:
        return Individual(developer_id)
    if brand_profile_id:
        return Platform(brand_profile_id)
    raise ValidationError(
        "Ownership reference is required",
        detail={"errors": [
            {"field": "developerId", "message": "developerId or brandProfileId is required", "type": "owner_missing"},
        ]},
    )


def owner_from_kind(kind: str, owner_id: str) -> Owner:
    if kind == "individual":
        return Individual(owner_id)
    if kind == "platform":
        return Platform(owner_id)
    raise ValueError(f"Unknown owner kind: {kind}")
