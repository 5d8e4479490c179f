from fastapi import APIRouter

from prledger.api.v1 import admin, contributions

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(contributions.router)
api_router.include_router(admin.router)
