from fastapi import APIRouter

from pak_invalidator.routers.paks import router as paks_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(paks_router)
