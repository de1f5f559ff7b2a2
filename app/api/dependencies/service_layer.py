"""
Service layer dependency injection and error handling.

This module provides the country service to endpoints and converts domain
exceptions raised while serving a request into HTTP responses.
"""

from functools import wraps
from typing import Any, Callable, TypeVar

from fastapi import Depends, HTTPException
from starlette import status
from starlette.requests import Request
from structlog import get_logger

from app.config import Settings, get_settings
from app.services.cache import CountryCache, NullCountryCache
from app.services.countries import CountryService, CountryServiceBase
from app.services.exceptions import CountryConflictError

logger = get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def handle_service_errors(func: F) -> F:
    """
    Decorator to convert service layer exceptions to HTTP responses.

    Usage:
        @handle_service_errors
        def my_endpoint():
            return service.do_something()
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CountryConflictError as e:
            logger.warning("Country conflict", field=e.field, value=e.value)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"field": e.field, "message": e.message},
            )

    return wrapper  # type: ignore[return-value]


def build_country_cache(settings: Settings) -> CountryCache:
    if not settings.COUNTRY_CACHE_ENABLED:
        logger.info("Country cache disabled")
        return NullCountryCache(maxsize=settings.MAX_CACHE_SIZE)
    return CountryCache.from_settings(settings)


def get_country_cache(request: Request) -> CountryCache:
    """The application wide cache, created along with the app."""
    return request.app.state.country_cache


def get_country_service(
    cache: CountryCache = Depends(get_country_cache),
    settings: Settings = Depends(get_settings),
) -> CountryServiceBase:
    return CountryService(cache=cache, settings=settings)
