from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog
from app.services.auth import Actor


async def audit(
    db: AsyncSession,
    *,
    actor: Actor | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    owner_id: str | None = None,
    detail: dict | None = None,
) -> None:
    if owner_id is None and actor is not None and actor.owner is not None:
        owner_id = actor.owner.id
    db.add(AuditLog(
        owner_id=owner_id,
        actor_api_key_id=actor.api_key_id if actor else None,
        action=action,
        target_type=target_type,
        target_id=target_id,
        detail=detail or {},
    ))
