from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.canonical.v1.owner import Owner
from app.core.errors import NotFound
from app.models.owner_profile import OwnerProfile


async def get_owner_profile(db: AsyncSession, owner_id: str) -> OwnerProfile | None:
    return (await db.execute(select(OwnerProfile).where(OwnerProfile.id == owner_id))).scalar_one_or_none()


async def require_owner_profile(db: AsyncSession, owner: Owner) -> OwnerProfile:
    """The referenced profile must exist and be of the matching kind."""
    profile = await get_owner_profile(db, owner.id)
    if profile is None or profile.kind != owner.kind:
        raise NotFound(
            f"Unknown {owner.kind} owner '{owner.id}'",
            detail={"ownerKind": owner.kind, "ownerId": owner.id},
        )
    return profile


async def is_trusted(db: AsyncSession, owner: Owner) -> bool:
    res = await db.execute(select(OwnerProfile.is_trusted).where(OwnerProfile.id == owner.id))
    return bool(res.scalar_one_or_none())
