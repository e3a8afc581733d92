from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.developments import commit, get_development_service
from app.core.db import get_db
from app.schemas.development import ApproveIn, DevelopmentOut, QueueAnalyticsOut, QueueEntryOut, RejectIn
from app.services import approval_queue
from app.services.auth import Actor, require_platform_admin
from app.services.developments import DevelopmentService
from app.services.idempotency import (
    get_or_reserve_idempotency,
    optional_idempotency_key,
    store_idempotency_response,
)

router = APIRouter(prefix="/admin")


@router.get("/approval-queue", response_model=list[QueueEntryOut])
async def pending_submissions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> list[QueueEntryOut]:
    rows = await approval_queue.list_pending(db, limit=limit, offset=offset)
    return [QueueEntryOut.from_row(r) for r in rows]


@router.get("/approval-queue/analytics", response_model=QueueAnalyticsOut)
async def queue_analytics(
    actor: Actor = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> QueueAnalyticsOut:
    return QueueAnalyticsOut(**asdict(await approval_queue.queue_analytics(db)))


@router.get("/developments/{development_id}/submissions", response_model=list[QueueEntryOut])
async def development_submissions(
    development_id: str,
    actor: Actor = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
) -> list[QueueEntryOut]:
    rows = await approval_queue.list_for_development(db, development_id)
    return [QueueEntryOut.from_row(r) for r in rows]


async def _replay(db: AsyncSession, actor: Actor, key: str | None, request: Request, body: dict):
    if not key:
        return None
    existing = await get_or_reserve_idempotency(
        db=db,
        actor=actor,
        idempotency_key=key,
        request_path=str(request.url.path),
        request_body=body,
    )
    return existing.response if existing else None


async def _remember(db: AsyncSession, actor: Actor, key: str | None, resp: DevelopmentOut) -> None:
    if key:
        await store_idempotency_response(
            db=db, actor=actor, idempotency_key=key, response=resp.model_dump(mode="json"),
        )


@router.post("/developments/{development_id}/approve", response_model=DevelopmentOut)
async def approve_development(
    development_id: str,
    payload: ApproveIn,
    request: Request,
    actor: Actor = Depends(require_platform_admin),
    idempotency_key: str | None = Depends(optional_idempotency_key),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentOut:
    replay = await _replay(db, actor, idempotency_key, request, payload.model_dump())
    if replay is not None:
        return DevelopmentOut(**replay)

    view = await svc.approve(actor, development_id, payload.compliance_checks, payload.notes)
    resp = DevelopmentOut.from_row(view.development, view.unit_types)
    await _remember(db, actor, idempotency_key, resp)
    await commit(db)
    return resp


@router.post("/developments/{development_id}/reject", response_model=DevelopmentOut)
async def reject_development(
    development_id: str,
    payload: RejectIn,
    request: Request,
    actor: Actor = Depends(require_platform_admin),
    idempotency_key: str | None = Depends(optional_idempotency_key),
    svc: DevelopmentService = Depends(get_development_service),
    db: AsyncSession = Depends(get_db),
) -> DevelopmentOut:
    replay = await _replay(db, actor, idempotency_key, request, payload.model_dump())
    if replay is not None:
        return DevelopmentOut(**replay)

    view = await svc.reject(actor, development_id, payload.reason)
    resp = DevelopmentOut.from_row(view.development, view.unit_types)
    await _remember(db, actor, idempotency_key, resp)
    await commit(db)
    return resp
