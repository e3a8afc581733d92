import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.db import Database
from app.core.errors import ConflictError, DomainError
from app.core.telemetry import instrument_engine, setup_telemetry
from app.services.location_resolver import LocationResolver

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = Database(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
    resolver = LocationResolver.from_settings()
    if settings.telemetry_enabled:
        instrument_engine(database.engine)

    app.state.database = database
    app.state.location_resolver = resolver if resolver.enabled else None
    try:
        yield
    finally:
        await resolver.aclose()
        await database.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="Development Publisher API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        if isinstance(exc, ConflictError):
            log.error("conflict on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    if settings.telemetry_enabled:
        setup_telemetry(app)
    app.include_router(v1_router)
    return app


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
app = create_app()
