from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.canonical.v1.owner import Individual, Owner
from app.core.config import settings
from app.core.errors import QuotaExceeded
from app.models.development import Development


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    current: int
    max: int | None


async def _count_developments(db: AsyncSession, owner: Owner) -> int:
    column = Development.developer_id if isinstance(owner, Individual) else Development.brand_profile_id
    res = await db.execute(select(func.count()).select_from(Development).where(column == owner.id))
    return res.scalar_one() or 0


async def check_limit(db: AsyncSession, owner: Owner, resource: str = "developments") -> QuotaCheck:
    if resource != "developments":
        raise ValueError(f"Unknown quota resource: {resource}")
    current = await _count_developments(db, owner)
    limit = settings.max_developments_per_owner
    return QuotaCheck(allowed=limit is None or current < limit, current=current, max=limit)


async def enforce_limit(db: AsyncSession, owner: Owner, resource: str = "developments") -> QuotaCheck:
    check = await check_limit(db, owner, resource)
    if not check.allowed:
        raise QuotaExceeded(
            f"{resource} limit reached ({check.current}/{check.max})",
            detail={"resource": resource, "current": check.current, "max": check.max},
        )
    return check
