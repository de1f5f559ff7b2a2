from fastapi import APIRouter

from app.api.countries import router as country_router
from app.config import Settings


def build_api_router(settings: Settings) -> APIRouter:
    api_router = APIRouter()

    # e.g. /countries/v1/search
    api_router.include_router(
        country_router, prefix=f"/countries{settings.API_V1_STR}"
    )
    return api_router
