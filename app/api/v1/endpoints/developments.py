import logging
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from app.canonical.v1.owner import Owner, owner_from_refs
from app.core.db import get_db
from app.core.errors import ConflictError
from app.schemas.common import ErrorResponse
from app.schemas.development import (
    DevelopmentOut,
    DevelopmentSaveOut,
    DevelopmentSummaryOut,
    PublishOut,
    QueueEntryOut,
    ReadinessOut,
)
from app.services.auth import Actor, get_actor
from app.services.developments import DevelopmentService, SaveResult
from app.services.idempotency import (
    get_or_reserve_idempotency,
    optional_idempotency_key,
    store_idempotency_response,
)
from app.services.quota import enforce_limit

log = logging.getLogger(__name__)
router = APIRouter(
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)


def get_development_service(request: Request, db: AsyncSession = Depends(get_db)) -> DevelopmentService:
    return DevelopmentService(db, location_resolver=getattr(request.app.state, "location_resolver", None))


async def commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.exception("development write failed: integrity error")
        raise HTTPException(status_code=409, detail="Constraint violation")
    except StaleDataError as e:
        await db.rollback()
        log.error("development write lost a concurrent update: %s", e)
        raise ConflictError("Development was modified by another request") from e


def _owner_for_create(actor: Actor, raw: dict[str, Any]) -> Owner:
    developer_id = raw.get("developerId", raw.get("developer_id"))
    brand_profile_id = raw.get("brandProfileId", raw.get("brand_profile_id"))
    # a developer creating without a reference creates for itself
    if developer_id is None and brand_profile_id is None and actor.owner is not None:
        return actor.owner
    return owner_from_refs(developer_id=developer_id, brand_profile_id=brand_profile_id)


def _parse_if_match(if_match: str | None) -> int | None:
    if if_match is None:
        return None
    try:
        return int(if_match.strip().removeprefix("W/").strip('"'))
    except ValueError:
        raise HTTPException(status_code=400, detail="If-Match must carry the development version")


def _save_out(result: SaveResult) -> DevelopmentSaveOut:
    return DevelopmentSaveOut(
        development=DevelopmentOut.from_row(result.development, result.unit_types),
        readiness=ReadinessOut.from_result(result.readiness),
        errors=result.errors,
    )


@router.post("/developments", response_model=DevelopmentSaveOut, status_code=201)
async def create_development(
    raw: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentSaveOut:
    owner = _owner_for_create(actor, raw)
    await enforce_limit(db, owner, "developments")
    result = await svc.create(actor, owner, raw)
    resp = _save_out(result)
    await commit(db)
    return resp


@router.get("/developments", response_model=list[DevelopmentSummaryOut])
async def list_developments(
    developer_id: str | None = Query(default=None, alias="developerId"),
    brand_profile_id: str | None = Query(default=None, alias="brandProfileId"),
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
) -> list[DevelopmentSummaryOut]:
    owner = None
    if developer_id or brand_profile_id:
        owner = owner_from_refs(developer_id=developer_id, brand_profile_id=brand_profile_id)
    rows = await svc.list_for_owner(actor, owner)
    return [DevelopmentSummaryOut.from_row(d) for d in rows]


@router.get("/developments/{development_id}", response_model=DevelopmentOut)
async def get_development(
    development_id: str,
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
) -> DevelopmentOut:
    view = await svc.get(actor, development_id)
    return DevelopmentOut.from_row(view.development, view.unit_types)


@router.patch("/developments/{development_id}", response_model=DevelopmentSaveOut)
async def update_development(
    development_id: str,
    raw: dict[str, Any] = Body(...),
    if_match: str | None = Header(default=None),
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentSaveOut:
    result = await svc.update(actor, development_id, raw, expected_version=_parse_if_match(if_match))
    resp = _save_out(result)
    await commit(db)
    return resp


@router.delete("/developments/{development_id}", status_code=204)
async def delete_development(
    development_id: str,
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await svc.delete(actor, development_id)
    await commit(db)
    return Response(status_code=204)


@router.post("/developments/{development_id}/publish", response_model=PublishOut)
async def publish_development(
    development_id: str,
    request: Request,
    actor: Actor = Depends(get_actor),
    idempotency_key: str | None = Depends(optional_idempotency_key),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> PublishOut:
    if idempotency_key:
        existing = await get_or_reserve_idempotency(
            db=db,
            actor=actor,
            idempotency_key=idempotency_key,
            request_path=str(request.url.path),
            request_body={},
        )
        if existing:
            # Safe retry: return stored response
            return PublishOut(**existing.response)

    result = await svc.publish(actor, development_id)
    resp = PublishOut(
        development=DevelopmentOut.from_row(result.development, result.unit_types),
        submission=QueueEntryOut.from_row(result.entry),
        readiness=ReadinessOut.from_result(result.readiness),
        auto_approved=result.auto_approved,
    )

    if idempotency_key:
        await store_idempotency_response(
            db=db, actor=actor, idempotency_key=idempotency_key, response=resp.model_dump(mode="json"),
        )
    await commit(db)
    return resp


@router.get("/developments/{development_id}/readiness", response_model=ReadinessOut)
async def development_readiness(
    development_id: str,
    profile: Literal["draft", "publish"] = Query(default="publish"),
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
) -> ReadinessOut:
    return ReadinessOut.from_result(await svc.readiness(actor, development_id, profile))


@router.post("/developments/{development_id}/media", response_model=DevelopmentSaveOut, status_code=201)
async def commit_media(
    development_id: str,
    item: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentSaveOut:
    """Phase two of an upload: record the stored-object URL returned by the media store."""
    resp = _save_out(await svc.commit_media(actor, development_id, item))
    await commit(db)
    return resp


@router.put("/developments/{development_id}/media/{media_id}/hero", response_model=DevelopmentSaveOut)
async def set_hero_media(
    development_id: str,
    media_id: str,
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentSaveOut:
    resp = _save_out(await svc.set_hero_media(actor, development_id, media_id))
    await commit(db)
    return resp


@router.delete("/developments/{development_id}/media/{media_id}", response_model=DevelopmentSaveOut)
async def remove_media(
    development_id: str,
    media_id: str,
    actor: Actor = Depends(get_actor),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentSaveOut:
    resp = _save_out(await svc.remove_media(actor, development_id, media_id))
    await commit(db)
    return resp
