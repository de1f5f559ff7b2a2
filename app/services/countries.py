from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import Session
from structlog import get_logger

from app.config import Settings, get_settings
from app.models import Country
from app.repositories.country_repository import CountryRepository, country_repository
from app.schemas.country import (
    CountryCreateIn,
    CountryDetail,
    CountryPage,
    CountrySearchRequest,
    CountryUpdateIn,
    CountryWriteIn,
)
from app.services.cache import (
    CONTINENTS_KEY,
    CountryCache,
    country_id_key,
    country_search_key,
)

logger = get_logger()


def normalize_country_fields(data: CountryWriteIn) -> dict:
    """Trimmed name and continent, upper case ISO codes, trimmed non-empty codes."""
    return {
        "name": data.name.strip(),
        "continent": data.continent.strip(),
        "iso2": data.iso2.strip().upper(),
        "iso3": data.iso3.strip().upper(),
        "codes": [c.strip() for c in data.country_codes if c.strip()],
    }


class CountryServiceBase(ABC):
    """
    Operations on the country reference data.

    A missing country is reported by returning None (or False), never by
    raising. Uniqueness of names, ISO codes and dialling codes is checked by
    the caller using the ``exists_by_*`` probes before create or update.
    """

    @abstractmethod
    def get_by_id(self, session: Session, country_id: int) -> Optional[CountryDetail]:
        pass

    @abstractmethod
    def search(self, session: Session, request: CountrySearchRequest) -> CountryPage:
        pass

    @abstractmethod
    def create(self, session: Session, data: CountryCreateIn) -> CountryDetail:
        pass

    @abstractmethod
    def update(
        self, session: Session, country_id: int, data: CountryUpdateIn
    ) -> Optional[CountryDetail]:
        pass

    @abstractmethod
    def delete(self, session: Session, country_id: int) -> bool:
        pass

    @abstractmethod
    def exists(self, session: Session, country_id: int) -> bool:
        pass

    @abstractmethod
    def exists_by_name(
        self, session: Session, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_iso2(
        self, session: Session, iso2: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_iso3(
        self, session: Session, iso3: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_country_code(
        self, session: Session, code: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def get_continents(self, session: Session) -> List[str]:
        pass


class CountryService(CountryServiceBase):
    """Country operations backed by the database with a read-through cache."""

    def __init__(
        self,
        cache: CountryCache,
        repository: Optional[CountryRepository] = None,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.repository = repository or country_repository
        self.settings = settings or get_settings()

    @property
    def country_ttl(self) -> int:
        return self.settings.country_cache_ttl_seconds

    @property
    def search_ttl(self) -> int:
        return self.settings.search_cache_ttl_seconds

    def get_by_id(self, session: Session, country_id: int) -> Optional[CountryDetail]:
        def load() -> Optional[CountryDetail]:
            country = self.repository.get_by_id(session, country_id)
            if country is None:
                return None
            return self._to_detail(country)

        return self.cache.get_or_set(
            country_id_key(country_id), load, ttl=self.country_ttl, size=1
        )

    def search(self, session: Session, request: CountrySearchRequest) -> CountryPage:
        def load() -> CountryPage:
            countries, total = self.repository.search(session, request)
            return CountryPage(
                items=[self._to_detail(c) for c in countries],
                total_count=total,
                page_number=request.page_number,
                page_size=request.page_size,
            )

        # An empty page still occupies a slot
        return self.cache.get_or_set(
            country_search_key(request),
            load,
            ttl=self.search_ttl,
            size=lambda page: max(len(page.items), 1),
        )

    def get_continents(self, session: Session) -> List[str]:
        return self.cache.get_or_set(
            CONTINENTS_KEY,
            lambda: self.repository.get_continents(session),
            ttl=self.country_ttl,
            size=1,
        )

    def create(self, session: Session, data: CountryCreateIn) -> CountryDetail:
        fields = normalize_country_fields(data)
        try:
            country = self.repository.create(session, **fields, commit=True)
        except Exception:
            session.rollback()
            raise
        self._invalidate_cache()
        logger.info("Country created", country_id=country.id, name=country.name)
        return self._to_detail(country)

    def update(
        self, session: Session, country_id: int, data: CountryUpdateIn
    ) -> Optional[CountryDetail]:
        country = self.repository.get_by_id(session, country_id)
        if country is None:
            return None

        fields = normalize_country_fields(data)
        try:
            country = self.repository.replace(
                session, db_obj=country, **fields, commit=True
            )
        except Exception:
            session.rollback()
            raise
        self._invalidate_cache()
        logger.info("Country updated", country_id=country.id, name=country.name)
        return self._to_detail(country)

    def delete(self, session: Session, country_id: int) -> bool:
        country = self.repository.get_by_id(session, country_id)
        if country is None:
            return False

        name = country.name
        try:
            self.repository.remove(session, db_obj=country, commit=True)
        except Exception:
            session.rollback()
            raise
        self._invalidate_cache()
        logger.info("Country deleted", country_id=country_id, name=name)
        return True

    def exists(self, session: Session, country_id: int) -> bool:
        return self.repository.exists(session, country_id)

    def exists_by_name(
        self, session: Session, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        return self.repository.exists_by_name(session, name, exclude_id)

    def exists_by_iso2(
        self, session: Session, iso2: str, exclude_id: Optional[int] = None
    ) -> bool:
        return self.repository.exists_by_iso2(session, iso2, exclude_id)

    def exists_by_iso3(
        self, session: Session, iso3: str, exclude_id: Optional[int] = None
    ) -> bool:
        return self.repository.exists_by_iso3(session, iso3, exclude_id)

    def exists_by_country_code(
        self, session: Session, code: str, exclude_id: Optional[int] = None
    ) -> bool:
        return self.repository.exists_by_country_code(session, code, exclude_id)

    @staticmethod
    def _to_detail(country: Country) -> CountryDetail:
        return CountryDetail.model_validate(country)

    def _invalidate_cache(self) -> None:
        removed = self.cache.invalidate()
        logger.debug("Invalidated country cache", removed=removed)
