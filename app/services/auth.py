from dataclasses import dataclass

from fastapi import Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.canonical.v1.owner import Owner, owner_from_kind
from app.core.db import get_db
from app.core.security import hash_api_key, key_prefix
from app.models.api_key import ApiKey
from app.models.owner_profile import OwnerProfile

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

ROLE_DEVELOPER = "developer"
ROLE_PLATFORM_ADMIN = "platform_admin"


@dataclass(frozen=True)
class Actor:
    api_key_id: str
    role: str  # "developer" | "platform_admin"
    owner: Owner | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_PLATFORM_ADMIN

    def owns(self, owner: Owner) -> bool:
        return self.owner is not None and self.owner == owner


async def get_actor(
    api_key: str | None = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    if not api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key")

    prefix = key_prefix(api_key)
    if prefix is None:
        raise HTTPException(status_code=401, detail="Invalid API key")

    stmt = (
        select(ApiKey, OwnerProfile.kind)
        .outerjoin(OwnerProfile, OwnerProfile.id == ApiKey.owner_id)
        .where(
            ApiKey.key_prefix == prefix,
            ApiKey.key_hash == hash_api_key(api_key),
            ApiKey.is_active.is_(True),
        )
    )
    row = (await db.execute(stmt)).first()
    if not row:
        raise HTTPException(status_code=401, detail="Invalid API key")

    key, owner_kind = row
    owner = owner_from_kind(owner_kind, key.owner_id) if key.owner_id and owner_kind else None
    return Actor(api_key_id=key.id, role=key.role, owner=owner)


def require_platform_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Platform admin role required")
    return actor
