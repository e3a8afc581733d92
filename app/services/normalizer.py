"""
Wizard payload normalizer.

Turns loosely-typed wizard state into the snake_case storage payload used by
the development service. Pure and deterministic: it never touches storage and
never raises for business rules. Invalid fields are reported and dropped so
that whatever is valid can still be saved as a draft.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from app.canonical.v1.development import DevelopmentDraftV1


# dropping fields can surface new errors (e.g. an after-validator that only
# runs once its inputs are valid); bounded so malformed input always terminates
MAX_PASSES = 5

_DROPPED = object()

# error locations produced for keys that were translated from a legacy input
_LEGACY_INPUT_KEYS = {
    "basePriceFrom": "priceFrom",
    "basePriceTo": "priceTo",
    "parkingKind": "parking",
    "parkingBays": "parking",
}

# (from, to) pairs where from must not exceed to
_PARENT_RANGES = (
    ("price_from", "price_to"),
    ("monthly_levy_from", "monthly_levy_to"),
    ("rates_from", "rates_to"),
)
_UNIT_RANGES = (
    ("base_price_from", "base_price_to"),
    ("monthly_rent_from", "monthly_rent_to"),
)


@dataclass(frozen=True)
class NormalizationResult:
    payload: dict[str, Any]
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _error(path: str, message: str, type_: str) -> dict[str, Any]:
    return {"field": path, "message": message, "type": type_}


def _lookup_key(container: dict, seg: str) -> str | None:
    for key in (seg, to_snake(seg), _LEGACY_INPUT_KEYS.get(seg)):
        if key is not None and key in container:
            return key
    return None


def _child(container: Any, seg: Any) -> Any:
    if isinstance(container, dict) and isinstance(seg, str):
        key = _lookup_key(container, seg)
        return container[key] if key is not None else _DROPPED
    if isinstance(container, list) and isinstance(seg, int) and 0 <= seg < len(container):
        return container[seg]
    return _DROPPED


def _remove(container: Any, seg: Any) -> bool:
    if isinstance(container, dict) and isinstance(seg, str):
        key = _lookup_key(container, seg)
        if key is None:
            return False
        del container[key]
        return True
    if isinstance(container, list) and isinstance(seg, int) and 0 <= seg < len(container):
        # list items are purged after all drops so sibling indexes stay valid
        if container[seg] is _DROPPED:
            return False
        container[seg] = _DROPPED
        return True
    return False


def _drop_path(data: dict, loc: tuple) -> bool:
    """Remove the value at `loc`; when the leaf is absent (a required field), drop its enclosing item."""
    if not loc:
        return False
    parent: Any = data
    for seg in loc[:-1]:
        child = _child(parent, seg)
        if not isinstance(child, (dict, list)):
            return _remove(parent, seg)
        parent = child
    if _remove(parent, loc[-1]):
        return True
    return _drop_path(data, loc[:-1])


def _purge(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _purge(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_purge(v) for v in value if v is not _DROPPED]
    return value


def _path(loc: tuple) -> str:
    return ".".join(str(p) for p in loc)


def _validate(data: dict, errors: list[dict[str, Any]]) -> DevelopmentDraftV1:
    for _ in range(MAX_PASSES):
        try:
            return DevelopmentDraftV1.model_validate(data)
        except PydanticValidationError as e:
            dropped = False
            reported = {err["field"] for err in errors}
            for err in e.errors(include_url=False):
                loc = tuple(err["loc"])
                # a dropped required field resurfaces as "missing"; keep the first report
                if _path(loc) not in reported:
                    errors.append(_error(_path(loc), err["msg"], err["type"]))
                dropped = _drop_path(data, loc) or dropped
            data = _purge(data)
            if not dropped:
                break
    return DevelopmentDraftV1()


def _check_range(
    item: dict[str, Any],
    lo_key: str,
    hi_key: str,
    prefix: str,
    errors: list[dict[str, Any]],
) -> None:
    lo, hi = item.get(lo_key), item.get(hi_key)
    # zero / absent upper bound means "single price", not a range
    if lo is None or not hi:
        return
    if Decimal(lo) > Decimal(hi):
        errors.append(_error(
            prefix + to_camel(hi_key),
            f"{to_camel(lo_key)} must not exceed {to_camel(hi_key)}",
            "range_order",
        ))
        item.pop(hi_key)


def _check_unit(unit: dict[str, Any], prefix: str, errors: list[dict[str, Any]]) -> None:
    for lo_key, hi_key in _UNIT_RANGES:
        _check_range(unit, lo_key, hi_key, prefix, errors)

    start, end = unit.get("auction_start_date"), unit.get("auction_end_date")
    if start is not None and end is not None and end <= start:
        errors.append(_error(prefix + "auctionEndDate", "auctionEndDate must be after auctionStartDate", "date_order"))
        unit.pop("auction_end_date")

    bid, reserve = unit.get("starting_bid"), unit.get("reserve_price")
    if bid is not None and reserve is not None and reserve < bid:
        errors.append(_error(prefix + "reservePrice", "reservePrice must not be below startingBid", "range_order"))
        unit.pop("reserve_price")


def normalize(raw: Any) -> NormalizationResult:
    """
    Normalize a raw wizard payload.

    Only keys the caller supplied appear in the payload, so the result can be
    merged field-by-field into an existing record. `unit_types` and `media`,
    when present, are complete lists (they are replaced, never merged).
    """
    if not isinstance(raw, dict):
        return NormalizationResult({}, [_error("", "payload must be an object", "dict_type")])

    errors: list[dict[str, Any]] = []
    model = _validate(copy.deepcopy(raw), errors)

    payload = model.model_dump(exclude_unset=True, exclude={"unit_types", "media"})
    if "media" in model.model_fields_set:
        payload["media"] = [m.model_dump() for m in model.media]
    if model.unit_types is not None:
        payload["unit_types"] = [u.model_dump() for u in model.unit_types]

    for lo_key, hi_key in _PARENT_RANGES:
        _check_range(payload, lo_key, hi_key, "", errors)

    seen_ids: set[str] = set()
    for i, unit in enumerate(payload.get("unit_types") or []):
        prefix = f"unitTypes.{i}."
        unit_id = unit.get("id")
        if unit_id is not None:
            if unit_id in seen_ids:
                errors.append(_error(prefix + "id", f"duplicate unit type id '{unit_id}'", "duplicate_id"))
                unit["id"] = None
            else:
                seen_ids.add(unit_id)
        _check_unit(unit, prefix, errors)

    return NormalizationResult(payload, errors)
