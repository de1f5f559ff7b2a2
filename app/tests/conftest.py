"""
Root conftest for test configuration.

This file is loaded by pytest before other conftest.py files and provides
the settings every test runs against: an in-memory SQLite database and the
default cache configuration.
"""

import pytest

from app.config import Settings
from app.schemas.country import CountryCreateIn


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SQLALCHEMY_DATABASE_URI="sqlite://",
        CREATE_TABLES_ON_STARTUP=True,
        BACKEND_CORS_ORIGINS=[],
        COUNTRY_CACHE_DURATION_MINUTES=60,
        SEARCH_CACHE_DURATION_MINUTES=30,
        MAX_CACHE_SIZE=1000,
    )


@pytest.fixture
def dominican_republic_in() -> CountryCreateIn:
    return CountryCreateIn(
        name="Dominican Republic",
        continent="North America",
        country_codes="1-809, 1-829, 1-849",
        iso2="DO",
        iso3="DOM",
    )
