import textwrap
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette import status
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from structlog import get_logger

from app.api import build_api_router
from app.api.dependencies.service_layer import build_country_cache
from app.config import Settings
from app.db.init_db import create_tables
from app.logging import init_tracing

logger = get_logger()

api_docs = textwrap.dedent(
    """
# 🌍

Reference data for the countries of the world.

Use this API to look up, search, add, edit, and remove countries along with
their continent, ISO 3166-1 codes and international dialling codes.

## Dialling codes

A country may have several dialling codes (the Dominican Republic uses
`1-809`, `1-829` and `1-849`). When writing a country send them as one comma
separated `countryCode` string; the first code listed becomes the primary
code. Responses carry the primary code as `countryCode` and every code
under `countryCodes`.

## Errors

Invalid input is answered with `400`, a missing country with `404` and a
name or code that already belongs to another country with `409`.
"""
)


def create_application(settings: Settings) -> FastAPI:
    prefix = f"/countries{settings.API_V1_STR}"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CREATE_TABLES_ON_STARTUP:
            await run_in_threadpool(create_tables, settings)
        yield
        app.state.country_cache.clear()

    app = FastAPI(
        title="Country Service API",
        description=api_docs,
        docs_url=f"{prefix}/docs",
        redoc_url=f"{prefix}/redoc",
        openapi_url=f"{prefix}/openapi.json",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.country_cache = build_country_cache(settings)

    init_tracing(app, settings)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "The client sent invalid data",
            request=request.url,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    async def catch_exceptions_middleware(request: Request, call_next):
        """
        This global middleware allows us to log any unexpected exceptions and ensure
        we don't return any unsanitized output to clients.
        """
        try:
            return await call_next(request)
        except HTTPException as e:
            # This exception is assumed fine for end users
            raise e
        except Exception as e:
            logger.error(
                "An uncaught exception occurred in a request handler",
                request=request.url,
                exc_info=e,
            )
            return Response(
                "Internal server error",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

    # Note without this handler being added before the CORS middleware, internal errors
    # don't include CORS headers - which masks the underlying internal error as a CORS error
    # to clients.
    app.middleware("http")(catch_exceptions_middleware)
    # Set all CORS enabled origins
    if settings.BACKEND_CORS_ORIGINS:
        logger.info(
            "Enabling cross origin restrictions",
            cors_origins=[str(c) for c in settings.BACKEND_CORS_ORIGINS],
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(build_api_router(settings))

    @app.get("/", include_in_schema=False)
    async def root():
        """
        Redirects to the OpenAPI documentation for the current version
        """
        return RedirectResponse(
            f"{prefix}/docs", status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )

    return app
