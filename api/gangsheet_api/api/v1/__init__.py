"""API v1 router."""

from fastapi import APIRouter

from gangsheet_api.api.v1.endpoints import (
    gangsheet_settings,
    gangsheets,
    health,
    storage_configs,
    tenants,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(tenants.router, prefix="/tenants", tags=["tenants"])
api_router.include_router(storage_configs.router, prefix="/storage-configs", tags=["storage-configs"])
api_router.include_router(gangsheet_settings.router, prefix="/gangsheet-settings", tags=["gangsheet-settings"])
api_router.include_router(gangsheets.router, prefix="/gangsheets", tags=["gangsheets"])
