from app.api.external_api_router import build_api_router
