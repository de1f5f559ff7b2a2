"""
Integration tests for the country repository and service against SQLite.
"""

import pytest
from sqlalchemy import func, select

from app.models import Country, CountryCode
from app.repositories.country_repository import country_repository
from app.schemas.country import CountrySearchRequest, CountryUpdateIn


def names(countries):
    return [c.name for c in countries]


class TestSearch:
    def test_unfiltered_search_pages_with_full_total(self, session, world):
        items, total = country_repository.search(
            session, CountrySearchRequest(page_size=2)
        )
        assert total == len(world)
        assert names(items) == ["Canada", "Dominican Republic"]

    def test_page_beyond_the_last_is_empty(self, session, world):
        items, total = country_repository.search(
            session, CountrySearchRequest(page_number=10, page_size=2)
        )
        assert items == []
        assert total == len(world)

    def test_continent_substring_filter_restricts_items_and_total(
        self, session, world
    ):
        items, total = country_repository.search(
            session, CountrySearchRequest(continent="Amer")
        )
        assert total == 2
        assert names(items) == ["Canada", "Dominican Republic"]

    def test_name_substring_filter(self, session, world):
        items, _ = country_repository.search(session, CountrySearchRequest(name="an"))
        assert names(items) == ["Canada", "Dominican Republic", "France", "Germany"]

    def test_like_wildcards_are_matched_literally(self, session, world):
        items, total = country_repository.search(session, CountrySearchRequest(name="%"))
        assert items == []
        assert total == 0

    def test_iso_filters_are_exact(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(iso2="KE", iso3="KEN")
        )
        assert names(items) == ["Kenya"]

        items, _ = country_repository.search(session, CountrySearchRequest(iso3="KEX"))
        assert items == []

    @pytest.mark.parametrize("code", ["1-809", "1-829", "1-849"])
    def test_country_is_found_by_any_of_its_codes(self, session, world, code):
        items, total = country_repository.search(
            session, CountrySearchRequest(country_code=code)
        )
        assert names(items) == ["Dominican Republic"]
        assert total == 1

    def test_country_code_filter_is_exact(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(country_code="1")
        )
        assert names(items) == ["Canada"]

    def test_filters_combine(self, session, world):
        items, total = country_repository.search(
            session, CountrySearchRequest(continent="Europe", name="Ger")
        )
        assert names(items) == ["Germany"]
        assert total == 1

    def test_sort_descending(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(sort_by="iso2", sort_direction="desc")
        )
        assert [c.iso2 for c in items] == ["KE", "FR", "DO", "DE", "CA"]

    def test_sort_by_primary_country_code(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(sort_by="countrycode")
        )
        # Text ordering of the primary code
        assert [c.primary_code for c in items] == ["1", "1-809", "254", "33", "49"]

    def test_unknown_sort_field_orders_by_name(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(sort_by="population")
        )
        assert names(items) == sorted(names(world))

    def test_equal_sort_values_are_ordered_by_id(self, session, world):
        items, _ = country_repository.search(
            session, CountrySearchRequest(sort_by="continent")
        )
        europe = [c for c in items if c.continent == "Europe"]
        assert [c.id for c in europe] == sorted(c.id for c in europe)

    def test_pages_do_not_overlap(self, session, world):
        seen = []
        for page_number in (1, 2, 3):
            items, _ = country_repository.search(
                session,
                CountrySearchRequest(
                    page_number=page_number, page_size=2, sort_by="continent"
                ),
            )
            seen.extend(c.id for c in items)
        assert sorted(seen) == sorted(c.id for c in world)


def test_continents_are_distinct_and_sorted(session, world):
    assert country_repository.get_continents(session) == [
        "Africa",
        "Europe",
        "North America",
    ]


def test_uniqueness_probes_can_exclude_a_country(session, world):
    france = world[0]
    assert country_repository.exists_by_name(session, "France")
    assert not country_repository.exists_by_name(session, "France", france.id)
    assert country_repository.exists_by_iso2(session, "FR")
    assert not country_repository.exists_by_iso3(session, "FRA", france.id)
    assert country_repository.exists_by_country_code(session, "1-829")
    assert not country_repository.exists_by_country_code(
        session, "1-829", world[3].id
    )
    assert not country_repository.exists(session, 9999)


class TestCountryService:
    def test_create_normalizes_and_orders_codes(
        self, session, country_service, dominican_republic_in
    ):
        dominican_republic_in.name = "  Dominican Republic  "
        dominican_republic_in.iso2 = "do"
        dominican_republic_in.iso3 = "dom"

        created = country_service.create(session, dominican_republic_in)

        assert created.name == "Dominican Republic"
        assert created.iso2 == "DO"
        assert created.iso3 == "DOM"
        assert created.country_code == "1-809"
        assert [(c.code, c.is_primary) for c in created.country_codes] == [
            ("1-809", True),
            ("1-829", False),
            ("1-849", False),
        ]
        assert created.created_date is not None
        assert created.modified_date is not None

    def test_missing_id_stays_missing_after_other_creations(
        self, session, country_service, make_country
    ):
        assert country_service.get_by_id(session, 1) is None
        created = make_country("France", "Europe", "33", "FR", "FRA")
        assert country_service.get_by_id(session, created.id) is not None
        assert country_service.get_by_id(session, created.id + 100) is None

    def test_update_is_visible_immediately(self, session, country_service, world):
        france = world[0]
        assert country_service.get_by_id(session, france.id).name == "France"
        assert country_service.get_continents(session) == [
            "Africa",
            "Europe",
            "North America",
        ]

        updated = country_service.update(
            session,
            france.id,
            CountryUpdateIn(
                name="French Republic",
                continent="Western Europe",
                country_codes="33, 330",
                iso2="FR",
                iso3="FRA",
            ),
        )

        assert updated.name == "French Republic"
        fetched = country_service.get_by_id(session, france.id)
        assert fetched.name == "French Republic"
        assert [c.code for c in fetched.country_codes] == ["33", "330"]
        assert "Western Europe" in country_service.get_continents(session)
        assert fetched.modified_date >= fetched.created_date

    def test_update_replaces_codes(self, session, country_service, world):
        dominican_republic = world[3]
        country_service.update(
            session,
            dominican_republic.id,
            CountryUpdateIn(
                name="Dominican Republic",
                continent="North America",
                country_codes="1-849",
                iso2="DO",
                iso3="DOM",
            ),
        )

        codes = session.scalars(
            select(CountryCode.code).where(
                CountryCode.country_id == dominican_republic.id
            )
        ).all()
        assert codes == ["1-849"]

    def test_delete_cascades_to_codes(self, session, country_service, world):
        dominican_republic = world[3]
        country_service.get_by_id(session, dominican_republic.id)

        assert country_service.delete(session, dominican_republic.id) is True

        assert country_service.get_by_id(session, dominican_republic.id) is None
        assert not country_service.exists_by_country_code(session, "1-829")
        remaining = session.scalar(
            select(func.count()).select_from(CountryCode).where(
                CountryCode.country_id == dominican_republic.id
            )
        )
        assert remaining == 0
        assert country_service.delete(session, dominican_republic.id) is False

    def test_search_reflects_creations(self, session, country_service, world, make_country):
        before = country_service.search(session, CountrySearchRequest(page_size=10))
        assert before.total_count == len(world)
        assert len(before.items) == len(world)

        make_country("Japan", "Asia", "81", "JP", "JPN")

        after = country_service.search(session, CountrySearchRequest(page_size=10))
        assert after.total_count == len(world) + 1
        assert session.scalar(select(func.count()).select_from(Country)) == len(world) + 1
