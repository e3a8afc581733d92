from __future__ import annotations

import logging
from dataclasses import dataclass

from app.canonical.v1.enums import lookup
from app.core.errors import ConflictError

log = logging.getLogger(__name__)


PARKING_KINDS = ("none", "open", "covered", "carport", "garage")

# kind -> (1 bay, 2 bays, 3+ bays)
_LEGACY_BY_KIND: dict[str, tuple[str, str, str]] = {
    "open": ("1", "2", "open_3plus"),
    "covered": ("covered", "covered_2", "covered_3plus"),
    "carport": ("carport", "carport_2", "carport_3plus"),
    "garage": ("garage", "garage_2", "garage_3plus"),
}


@dataclass(frozen=True)
class StructuredParking:
    kind: str
    bays: int
    garage_layout: str | None = None


@dataclass(frozen=True)
class LegacyParking:
    value: str
    type: str | None = None


def derive_legacy_parking(kind: str, bays: int | None, garage_layout: str | None = None) -> LegacyParking:
    """
    Structured parking -> legacy (value, type) pair.

    The legacy columns are never written from anywhere else, so re-deriving
    from the same structured input always yields the same pair.
    """
    if kind == "none":
        return LegacyParking("none")

    row = _LEGACY_BY_KIND.get(kind)
    if row is None:
        log.error("unknown parking kind reached persistence: %r", kind)
        raise ConflictError(
            f"Unknown parking kind '{kind}'",
            detail={"field": "parkingKind", "value": kind, "allowed": list(PARKING_KINDS)},
        )

    n = bays or 0
    if n <= 1:
        value = row[0]
    elif n == 2:
        value = row[1]
    else:
        value = row[2]

    legacy_type = garage_layout if kind == "garage" and n == 2 else None
    return LegacyParking(value, legacy_type)


def parse_legacy_parking(value: str | int | None) -> StructuredParking:
    """
    Older clients send a single parking string ("1", "2", "garage", ...).
    Anything unrecognised is treated as no parking.
    """
    if value is None:
        return StructuredParking("none", 0)

    v = str(value).strip().lower()
    if v in ("", "0", "none", "no"):
        return StructuredParking("none", 0)
    if v.isdigit():
        return StructuredParking("open", int(v))

    # reverse of the derivation table ("carport_2", "garage_3plus", ...)
    for kind, row in _LEGACY_BY_KIND.items():
        if v in row:
            return StructuredParking(kind, row.index(v) + 1)

    kind = lookup("parking_kind", v)
    if kind is None or kind == "none":
        return StructuredParking("none", 0)
    return StructuredParking(kind, 1)
