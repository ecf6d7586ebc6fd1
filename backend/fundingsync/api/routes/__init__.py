from fastapi import APIRouter

from fundingsync.api.routes import admin, health


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(admin.router)
