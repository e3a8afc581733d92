from fastapi import APIRouter, Request
from sqlalchemy import text

from app.core.config import settings

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": settings.service_name}


@router.get("/health/db")
async def health_db(request: Request) -> dict:
    database = request.app.state.database
    async with database.sessionmaker() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ok"}
