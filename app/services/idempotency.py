import hashlib
import json

from fastapi import Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.idempotency import IdempotencyKey
from app.services.auth import Actor


def _hash_request(path: str, body: dict) -> str:
    # Stable hash to detect conflicts (same idempotency key but different request)
    raw = json.dumps({"path": path, "body": body}, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return "sha256:" + hashlib.sha256(raw).hexdigest()


async def optional_idempotency_key(idempotency_key: str | None = Header(default=None)) -> str | None:
    """Workflow transitions accept an Idempotency-Key so a confirmed retry replays the stored response."""
    if idempotency_key is not None and len(idempotency_key) > 200:
        raise HTTPException(status_code=400, detail="Idempotency-Key too long")
    return idempotency_key or None


def _lookup(actor: Actor, idempotency_key: str):
    return select(IdempotencyKey).where(
        IdempotencyKey.actor_api_key_id == actor.api_key_id,
        IdempotencyKey.key == idempotency_key,
    )


async def get_or_reserve_idempotency(
    *,
    db: AsyncSession,
    actor: Actor,
    idempotency_key: str,
    request_path: str,
    request_body: dict,
) -> IdempotencyKey | None:
    """
    Returns the stored record when this key was already used for the same request
    (the caller should replay `record.response`), otherwise reserves the key and
    returns None.
    """
    req_hash = _hash_request(request_path, request_body)

    existing = (await db.execute(_lookup(actor, idempotency_key))).scalar_one_or_none()
    if existing:
        if existing.request_hash != req_hash:
            raise HTTPException(status_code=409, detail="Idempotency-Key reuse with different request")
        return existing

    # Reserve by inserting an empty response row
    db.add(IdempotencyKey(
        actor_api_key_id=actor.api_key_id,
        key=idempotency_key,
        request_hash=req_hash,
        response={},
    ))
    # Flush so it becomes visible in this transaction (unique constraint enforced)
    await db.flush()
    return None


async def store_idempotency_response(
    *,
    db: AsyncSession,
    actor: Actor,
    idempotency_key: str,
    response: dict,
) -> None:
    row = (await db.execute(_lookup(actor, idempotency_key))).scalar_one()
    row.response = response
    await db.flush()
