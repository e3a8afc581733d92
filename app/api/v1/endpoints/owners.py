import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.ids import gen_id
from app.core.security import generate_api_key
from app.models.api_key import ApiKey
from app.models.owner_profile import OwnerProfile
from app.schemas.owner import AdminBootstrapOut, OwnerBootstrapIn, OwnerBootstrapOut, OwnerOut, OwnerTrustIn
from app.services.auth import ROLE_DEVELOPER, ROLE_PLATFORM_ADMIN
from app.services.internal_admin import require_internal_admin
from app.services.owners import get_owner_profile

log = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_internal_admin)])


@router.post("/owners/bootstrap", response_model=OwnerBootstrapOut, status_code=201)
async def bootstrap_owner(payload: OwnerBootstrapIn, db: AsyncSession = Depends(get_db)) -> OwnerBootstrapOut:
    """
    Create an owner profile; individual owners also get their developer API key.
    Internal-only: identity issuance lives outside this service.
    """
    owner = OwnerProfile(
        id=gen_id("own"),
        kind=payload.kind,
        name=payload.name,
        is_trusted=payload.is_trusted,
        created_by="internal",
        updated_by="internal",
    )

    plain_key = None
    try:
        db.add(owner)
        await db.flush()  # owner row first so the key FK resolves
        if payload.kind == "individual":
            key = generate_api_key()
            db.add(ApiKey(
                role=ROLE_DEVELOPER,
                owner_id=owner.id,
                key_prefix=key.prefix,
                key_hash=key.hashed,
                is_active=True,
            ))
            plain_key = key.plain
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.exception("owner bootstrap failed: integrity error")
        raise HTTPException(status_code=409, detail="Constraint violation")

    log.info("owner %s bootstrapped (%s, trusted=%s)", owner.id, owner.kind, owner.is_trusted)
    return OwnerBootstrapOut(
        owner_id=owner.id,
        kind=owner.kind,
        is_trusted=owner.is_trusted,
        developer_api_key=plain_key,
    )


@router.post("/admins/bootstrap", response_model=AdminBootstrapOut, status_code=201)
async def bootstrap_admin(db: AsyncSession = Depends(get_db)) -> AdminBootstrapOut:
    key = generate_api_key()
    row = ApiKey(
        id=gen_id("key"),
        role=ROLE_PLATFORM_ADMIN,
        owner_id=None,
        key_prefix=key.prefix,
        key_hash=key.hashed,
        is_active=True,
    )
    try:
        db.add(row)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.exception("admin bootstrap failed: integrity error")
        raise HTTPException(status_code=409, detail="Constraint violation")

    return AdminBootstrapOut(api_key_id=row.id, platform_admin_api_key=key.plain)


@router.patch("/owners/{owner_id}/trust", response_model=OwnerOut)
async def set_owner_trust(owner_id: str, payload: OwnerTrustIn, db: AsyncSession = Depends(get_db)) -> OwnerOut:
    owner = await get_owner_profile(db, owner_id)
    if owner is None:
        raise HTTPException(status_code=404, detail="Owner not found")

    owner.is_trusted = payload.is_trusted
    owner.updated_by = "internal"
    await db.commit()
    log.info("owner %s trust set to %s", owner.id, owner.is_trusted)
    return OwnerOut(id=owner.id, kind=owner.kind, name=owner.name, is_trusted=owner.is_trusted)
