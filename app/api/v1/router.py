from fastapi import APIRouter

from app.api.v1.endpoints.admin import router as admin_router
from app.api.v1.endpoints.developments import router as developments_router
from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.me import router as me_router
from app.api.v1.endpoints.owners import router as owners_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(owners_router, tags=["owners"])
router.include_router(me_router, tags=["me"])
router.include_router(developments_router, tags=["developments"])
router.include_router(admin_router, tags=["admin"])
