"""
Unit tests for CountryService.

The repository is mocked so these tests cover caching and invalidation
behaviour only, not the queries.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
from mock import MagicMock, Mock

from app.config import Settings
from app.repositories.country_repository import CountryRepository
from app.schemas.country import CountrySearchRequest, CountryUpdateIn
from app.services.cache import CONTINENTS_KEY, CountryCache, country_id_key
from app.services.countries import CountryService, normalize_country_fields


def make_country(country_id=1, name="France", codes=("33",)):
    now = datetime(2024, 1, 1)
    return SimpleNamespace(
        id=country_id,
        name=name,
        continent="Europe",
        iso2="FR",
        iso3="FRA",
        created_date=now,
        modified_date=now,
        codes=[
            SimpleNamespace(id=i + 1, code=code, is_primary=i == 0)
            for i, code in enumerate(codes)
        ],
        primary_code=codes[0] if codes else None,
    )


class TestCountryService:
    def setup_method(self):
        self.repository = MagicMock(spec=CountryRepository)
        self.timer = Mock(return_value=0.0)
        self.cache = CountryCache(maxsize=100, timer=self.timer)
        self.settings = Settings(
            SQLALCHEMY_DATABASE_URI="sqlite://",
            COUNTRY_CACHE_DURATION_MINUTES=60,
            SEARCH_CACHE_DURATION_MINUTES=30,
        )
        self.service = CountryService(
            cache=self.cache, repository=self.repository, settings=self.settings
        )
        self.session = MagicMock()

    def test_get_by_id_is_served_from_cache(self):
        self.repository.get_by_id.return_value = make_country()

        first = self.service.get_by_id(self.session, 1)
        second = self.service.get_by_id(self.session, 1)

        assert first.name == "France"
        assert first.country_code == "33"
        assert second == first
        self.repository.get_by_id.assert_called_once_with(self.session, 1)

    def test_get_by_id_entry_expires_after_country_ttl(self):
        self.repository.get_by_id.return_value = make_country()
        self.service.get_by_id(self.session, 1)

        self.timer.return_value = 3600.0
        self.service.get_by_id(self.session, 1)

        assert self.repository.get_by_id.call_count == 2

    def test_missing_country_is_not_cached(self):
        self.repository.get_by_id.return_value = None

        assert self.service.get_by_id(self.session, 42) is None
        assert country_id_key(42) not in self.cache

    def test_search_is_cached_per_request(self):
        self.repository.search.return_value = ([make_country()], 1)
        request = CountrySearchRequest(name="Fra")

        page = self.service.search(self.session, request)
        self.service.search(self.session, CountrySearchRequest(name="Fra"))

        assert page.total_count == 1
        assert [c.name for c in page.items] == ["France"]
        self.repository.search.assert_called_once()

        self.service.search(self.session, CountrySearchRequest(name="Fra", page_size=10))
        assert self.repository.search.call_count == 2

    def test_search_entry_expires_after_search_ttl(self):
        self.repository.search.return_value = ([], 0)
        self.service.search(self.session, CountrySearchRequest())

        self.timer.return_value = 1800.0
        self.service.search(self.session, CountrySearchRequest())

        assert self.repository.search.call_count == 2

    def test_search_page_costs_one_unit_per_item(self):
        countries = [make_country(i, f"Country {i}") for i in range(1, 6)]
        self.repository.search.return_value = (countries, 5)

        self.service.search(self.session, CountrySearchRequest())
        assert self.cache.currsize == 5

    def test_continents_are_cached(self):
        self.repository.get_continents.return_value = ["Africa", "Europe"]

        assert self.service.get_continents(self.session) == ["Africa", "Europe"]
        assert self.service.get_continents(self.session) == ["Africa", "Europe"]
        self.repository.get_continents.assert_called_once()
        assert CONTINENTS_KEY in self.cache

    def test_update_invalidates_every_cached_read(self):
        country = make_country()
        self.repository.get_by_id.return_value = country
        self.repository.search.return_value = ([country], 1)
        self.repository.get_continents.return_value = ["Europe"]
        self.repository.replace.return_value = make_country(name="République")

        self.service.get_by_id(self.session, 1)
        self.service.search(self.session, CountrySearchRequest())
        self.service.get_continents(self.session)
        assert len(self.cache) == 3

        updated = self.service.update(
            self.session,
            1,
            CountryUpdateIn(
                name="République",
                continent="Europe",
                country_codes="33",
                iso2="fr",
                iso3="fra",
            ),
        )

        assert updated.name == "République"
        assert len(self.cache) == 0
        _, kwargs = self.repository.replace.call_args
        assert kwargs["iso2"] == "FR"
        assert kwargs["iso3"] == "FRA"
        assert kwargs["codes"] == ["33"]

    def test_update_of_missing_country_returns_none(self):
        self.repository.get_by_id.return_value = None
        self.cache.set(CONTINENTS_KEY, ["Europe"], ttl=60)

        result = self.service.update(
            self.session,
            7,
            CountryUpdateIn(
                name="X", continent="Y", country_codes="1", iso2="XX", iso3="XXX"
            ),
        )

        assert result is None
        self.repository.replace.assert_not_called()
        assert CONTINENTS_KEY in self.cache

    def test_delete_invalidates_cache(self):
        self.repository.get_by_id.return_value = make_country()
        self.service.get_by_id(self.session, 1)

        assert self.service.delete(self.session, 1) is True
        assert country_id_key(1) not in self.cache
        self.repository.remove.assert_called_once()

    def test_delete_of_missing_country_returns_false(self):
        self.repository.get_by_id.return_value = None
        assert self.service.delete(self.session, 1) is False
        self.repository.remove.assert_not_called()

    def test_failed_write_rolls_back_and_keeps_cache(self, dominican_republic_in):
        self.repository.create.side_effect = RuntimeError("database is gone")
        self.cache.set(CONTINENTS_KEY, ["Europe"], ttl=60)

        with pytest.raises(RuntimeError):
            self.service.create(self.session, dominican_republic_in)

        self.session.rollback.assert_called_once()
        assert CONTINENTS_KEY in self.cache

    @pytest.mark.parametrize(
        "method", ["exists_by_name", "exists_by_iso2", "exists_by_iso3", "exists_by_country_code"]
    )
    def test_uniqueness_probes_delegate_to_repository(self, method):
        getattr(self.repository, method).return_value = True

        assert getattr(self.service, method)(self.session, "value", 3) is True
        getattr(self.repository, method).assert_called_once_with(
            self.session, "value", 3
        )


def test_normalize_country_fields(dominican_republic_in):
    dominican_republic_in.name = "  Dominican Republic "
    dominican_republic_in.iso2 = "do"
    fields = normalize_country_fields(dominican_republic_in)

    assert fields == {
        "name": "Dominican Republic",
        "continent": "North America",
        "iso2": "DO",
        "iso3": "DOM",
        "codes": ["1-809", "1-829", "1-849"],
    }
