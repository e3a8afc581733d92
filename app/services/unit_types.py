from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.ids import gen_id
from app.models.development import Development
from app.models.unit_type import UnitType
from app.services.parking import derive_legacy_parking

log = logging.getLogger(__name__)


_MONEY_FIELDS = ("base_price_from", "monthly_rent_from", "starting_bid", "reserve_price")
# zero or absent upper bound collapses to a single price
_UPPER_BOUND_FIELDS = ("base_price_to", "monthly_rent_to")

_PLAIN_FIELDS: dict[str, Any] = {
    "name": None,
    "label": None,
    "description": None,
    "bedrooms": None,
    "bathrooms": None,
    "unit_size": None,
    "yard_size": None,
    "auction_start_date": None,
    "auction_end_date": None,
    "features": None,
    "finishes": None,
    "total_units": None,
    "available_units": None,
    "is_active": True,
}


def quantize_money(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(value).quantize(settings.money_quantum, rounding=ROUND_HALF_UP)


def _upper_bound(value: Any) -> Decimal | None:
    q = quantize_money(value)
    return q if q else None


def _utc(v: datetime | None) -> datetime | None:
    # SQLite hands timezone-aware columns back naive
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


def display_price_range(price_from: Any, price_to: Any) -> dict[str, Decimal] | None:
    """Render a price range for callers: {"from", "to"} when it is a real range, {"value"} otherwise."""
    lo, hi = quantize_money(price_from), _upper_bound(price_to)
    if lo is None and hi is None:
        return None
    if lo is None or hi is None or lo == hi:
        return {"value": lo if lo is not None else hi}
    return {"from": lo, "to": hi}


def commit_media_ids(items: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Give every media reference a stable id and an explicit position."""
    out = []
    for i, item in enumerate(items):
        item = dict(item)
        item["id"] = item.get("id") or gen_id("med")
        if item.get("order") is None:
            item["order"] = i
        out.append(item)
    return out


def _apply(row: UnitType, data: dict[str, Any], position: int, actor_id: str | None) -> None:
    for name, default in _PLAIN_FIELDS.items():
        value = data.get(name, default)
        setattr(row, name, default if value is None else value)

    for name in _MONEY_FIELDS:
        setattr(row, name, quantize_money(data.get(name)))
    for name in _UPPER_BOUND_FIELDS:
        setattr(row, name, _upper_bound(data.get(name)))

    row.parking_kind = data.get("parking_kind") or "none"
    row.parking_bays = data.get("parking_bays") or 0
    row.garage_layout = data.get("garage_layout")
    legacy = derive_legacy_parking(row.parking_kind, row.parking_bays, row.garage_layout)
    row.legacy_parking = legacy.value
    row.legacy_parking_type = legacy.type

    row.media = commit_media_ids(data.get("media") or [])

    order = data.get("display_order")
    row.display_order = position if order is None else order
    row.updated_by = actor_id


async def load_unit_types(db: AsyncSession, development_id: str) -> list[UnitType]:
    res = await db.execute(
        select(UnitType)
        .where(UnitType.development_id == development_id)
        .order_by(UnitType.display_order, UnitType.created_at)
    )
    return list(res.scalars().all())


async def replace_unit_types(
    db: AsyncSession,
    development: Development,
    incoming: Sequence[dict[str, Any]],
    *,
    actor_id: str | None = None,
) -> list[UnitType]:
    """
    Make the stored unit types equal to `incoming` (full replace by diff).

    Rows matched by id are updated in place, unmatched incoming units are
    inserted under a fresh server id, stored rows absent from `incoming` are
    deleted. Runs in the caller's transaction; parent ranges are recomputed.
    """
    existing = {u.id: u for u in await load_unit_types(db, development.id)}

    kept: list[UnitType] = []
    for position, data in enumerate(incoming):
        row = existing.pop(data.get("id"), None) if data.get("id") else None
        if row is None:
            row = UnitType(id=gen_id("unt"), development_id=development.id, created_by=actor_id)
            db.add(row)
        _apply(row, data, position, actor_id)
        kept.append(row)

    if existing:
        await db.execute(delete(UnitType).where(UnitType.id.in_(list(existing))))

    await db.flush()
    log.info(
        "unit types replaced for %s: %d kept/added, %d removed",
        development.id, len(kept), len(existing),
    )

    kept.sort(key=lambda u: u.display_order)
    recompute_price_ranges(development, kept)
    return kept


def recompute_price_ranges(development: Development, unit_types: Sequence[UnitType]) -> None:
    """
    Derive the parent's sale/rent/auction ranges and unit totals from its active unit types.

    A development with no active unit types keeps an owner-supplied sale price
    only when it is land; every other derived value is cleared.
    """
    active = [u for u in unit_types if u.is_active]

    if not active:
        if development.development_type != "land":
            development.price_from = None
            development.price_to = None
        development.monthly_rent_from = None
        development.monthly_rent_to = None
        development.starting_bid_from = None
        development.reserve_price_from = None
        development.auction_start_date = None
        development.auction_end_date = None
        if unit_types:
            development.total_units = None
            development.available_units = None
        return

    def _low(values: list[Any]) -> Any:
        values = [v for v in values if v is not None and v > 0]
        return min(values) if values else None

    def _high(pairs: list[tuple[Any, Any]]) -> Any:
        values = [hi or lo for lo, hi in pairs if (hi or lo)]
        return max(values) if values else None

    development.price_from = quantize_money(_low([u.base_price_from for u in active]))
    development.price_to = quantize_money(_high([(u.base_price_from, u.base_price_to) for u in active]))

    development.monthly_rent_from = quantize_money(_low([u.monthly_rent_from for u in active]))
    development.monthly_rent_to = quantize_money(_high([(u.monthly_rent_from, u.monthly_rent_to) for u in active]))

    development.starting_bid_from = quantize_money(_low([u.starting_bid for u in active]))
    development.reserve_price_from = quantize_money(_low([u.reserve_price for u in active]))
    starts = [_utc(u.auction_start_date) for u in active if u.auction_start_date is not None]
    ends = [_utc(u.auction_end_date) for u in active if u.auction_end_date is not None]
    development.auction_start_date = min(starts) if starts else None
    development.auction_end_date = max(ends) if ends else None

    totals = [u.total_units for u in active if u.total_units is not None]
    available = [u.available_units for u in active if u.available_units is not None]
    development.total_units = sum(totals) if totals else None
    development.available_units = sum(available) if available else None


async def delete_unit_types(db: AsyncSession, development_id: str) -> None:
    await db.execute(delete(UnitType).where(UnitType.development_id == development_id))
