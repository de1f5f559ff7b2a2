import pytest
from sqlalchemy.orm import Session
from starlette.testclient import TestClient

from app.config import get_settings
from app.db import Base
from app.db.session import get_engine, get_session_maker
from app.fastapi_application import create_application
from app.schemas.country import CountryCreateIn
from app.services.cache import CountryCache
from app.services.countries import CountryService


@pytest.fixture
def engine(settings):
    engine = get_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session(settings, engine) -> Session:
    with get_session_maker(settings)() as session:
        yield session


@pytest.fixture
def country_cache() -> CountryCache:
    return CountryCache(maxsize=1000)


@pytest.fixture
def country_service(country_cache, settings) -> CountryService:
    return CountryService(cache=country_cache, settings=settings)


@pytest.fixture
def make_country(country_service, session):
    """Create countries through the service, committing each one."""

    def _make(name, continent, codes, iso2, iso3):
        return country_service.create(
            session,
            CountryCreateIn(
                name=name,
                continent=continent,
                country_codes=codes,
                iso2=iso2,
                iso3=iso3,
            ),
        )

    return _make


@pytest.fixture
def world(make_country):
    """A handful of countries across three continents."""
    return [
        make_country("France", "Europe", "33", "FR", "FRA"),
        make_country("Germany", "Europe", "49", "DE", "DEU"),
        make_country("Kenya", "Africa", "254", "KE", "KEN"),
        make_country("Dominican Republic", "North America", "1-809, 1-829, 1-849", "DO", "DOM"),
        make_country("Canada", "North America", "1", "CA", "CAN"),
    ]


@pytest.fixture
def app(settings, engine):
    app = create_application(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def api_prefix(settings) -> str:
    return f"/countries{settings.API_V1_STR}"
