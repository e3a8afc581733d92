"""
Canonical enum tables.

Every UI-side synonym the wizard (or an older client) may send is listed here
once and collapsed to a single stored value. Nothing outside the normalizer
and the unit persister should compare raw enum strings.
"""
from __future__ import annotations

from typing import Final


DEVELOPMENT_TYPES: Final[dict[str, str]] = {
    "residential": "residential",
    "commercial": "commercial",
    "mixed_use": "mixed_use",
    "mixed-use": "mixed_use",
    "mixed use": "mixed_use",
    "mixed": "mixed_use",
    "land": "land",
    "plots": "land",
}

TRANSACTION_TYPES: Final[dict[str, str]] = {
    "for_sale": "for_sale",
    "for-sale": "for_sale",
    "for sale": "for_sale",
    "sale": "for_sale",
    "sell": "for_sale",
    "buy": "for_sale",
    "for_rent": "for_rent",
    "for-rent": "for_rent",
    "for rent": "for_rent",
    "rent": "for_rent",
    "rental": "for_rent",
    "to_let": "for_rent",
    "to-let": "for_rent",
    "auction": "auction",
    "on_auction": "auction",
    "on-auction": "auction",
}

MARKETING_STATUSES: Final[dict[str, str]] = {
    "launching_soon": "launching_soon",
    "launching-soon": "launching_soon",
    "coming_soon": "launching_soon",
    "pre_launch": "launching_soon",
    "selling": "selling",
    "now-selling": "selling",
    "now_selling": "selling",
    "sold_out": "sold_out",
    "sold-out": "sold_out",
}

CONSTRUCTION_PHASES: Final[dict[str, str]] = {
    "planning": "planning",
    "under_construction": "under_construction",
    "under-construction": "under_construction",
    "construction": "under_construction",
    "near-completion": "under_construction",
    "completed": "completed",
    "phase_completed": "phase_completed",
    "phase-completed": "phase_completed",
}

NATURES: Final[dict[str, str]] = {
    "new": "new",
    "phase": "phase",
    "extension": "extension",
    "redevelopment": "redevelopment",
}

OWNERSHIP_TYPES: Final[dict[str, str]] = {
    "full-title": "full_title",
    "full_title": "full_title",
    "freehold": "full_title",
    "sectional-title": "sectional_title",
    "sectional_title": "sectional_title",
    "leasehold": "leasehold",
    "life-rights": "life_rights",
    "life_rights": "life_rights",
}

PARKING_KINDS: Final[dict[str, str]] = {
    "none": "none",
    "open": "open",
    "covered": "covered",
    "shade": "covered",
    "carport": "carport",
    "garage": "garage",
}

GARAGE_LAYOUTS: Final[dict[str, str]] = {
    "tandem": "tandem",
    "side_by_side": "side_by_side",
    "side-by-side": "side_by_side",
    "side by side": "side_by_side",
    "double": "side_by_side",
}

MEDIA_TYPES: Final[dict[str, str]] = {
    "image": "image",
    "photo": "image",
    "video": "video",
    "floorplan": "floorplan",
    "floor_plan": "floorplan",
    "document": "document",
    "brochure": "document",
    "pdf": "document",
}

MEDIA_CATEGORIES: Final[dict[str, str]] = {
    "hero": "hero",
    "featured": "hero",
    "primary": "hero",
    "gallery": "gallery",
    "general": "gallery",
    "photos": "gallery",
    "amenities": "gallery",
    "exterior": "gallery",
    "interior": "gallery",
    "floorplans": "floorplan",
    "floorplan": "floorplan",
    "videos": "video",
    "video": "video",
    "brochure": "brochure",
    "documents": "brochure",
}

# Enum namespaces addressable by the normalizer
ENUM_TABLES: Final[dict[str, dict[str, str]]] = {
    "development_type": DEVELOPMENT_TYPES,
    "transaction_type": TRANSACTION_TYPES,
    "marketing_status": MARKETING_STATUSES,
    "construction_phase": CONSTRUCTION_PHASES,
    "nature": NATURES,
    "ownership_type": OWNERSHIP_TYPES,
    "parking_kind": PARKING_KINDS,
    "garage_layout": GARAGE_LAYOUTS,
    "media_type": MEDIA_TYPES,
    "media_category": MEDIA_CATEGORIES,
}


def allowed_values(namespace: str) -> list[str]:
    return sorted(set(ENUM_TABLES[namespace].values()))


def lookup(namespace: str, value: str) -> str | None:
    """Case/whitespace-insensitive synonym lookup; None when unknown."""
    return ENUM_TABLES[namespace].get(value.strip().lower())
