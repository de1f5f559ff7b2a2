from typing import Optional

from fastapi import Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.schemas.country import CountrySearchRequest, CountryWriteIn
from app.services.countries import CountryServiceBase, normalize_country_fields
from app.services.exceptions import CountryConflictError


def get_country_search_request(
    name: Optional[str] = Query(None, description="Part of the country name"),
    continent: Optional[str] = Query(None, description="Part of the continent name"),
    iso2: Optional[str] = Query(None, description="Exact ISO 3166-1 alpha-2 code"),
    iso3: Optional[str] = Query(None, description="Exact ISO 3166-1 alpha-3 code"),
    country_code: Optional[str] = Query(
        None,
        alias="countryCode",
        description="Exact dialling code, matched against all of a country's codes",
    ),
    page_number: int = Query(1, alias="pageNumber", description="1-based page"),
    page_size: int = Query(50, alias="pageSize", description="Items per page"),
    sort_by: Optional[str] = Query(
        "name",
        alias="sortBy",
        description="name, continent, countrycode, iso2, iso3, createddate or modifieddate",
    ),
    sort_direction: Optional[str] = Query(
        "asc", alias="sortDirection", description="asc or desc"
    ),
) -> CountrySearchRequest:
    """
    Validate the search query string.

    Blank filters are dropped before the constraints are checked, so
    ``?iso2=`` is the same as leaving ``iso2`` out.
    """
    try:
        return CountrySearchRequest(
            name=name,
            continent=continent,
            iso2=iso2,
            iso3=iso3,
            country_code=country_code,
            page_number=page_number,
            page_size=page_size,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def check_for_conflicts(
    service: CountryServiceBase,
    session: Session,
    data: CountryWriteIn,
    exclude_id: Optional[int] = None,
) -> None:
    """
    Raise CountryConflictError if another country already uses the name, an
    ISO code or any of the dialling codes in ``data``.
    """
    fields = normalize_country_fields(data)

    if service.exists_by_name(session, fields["name"], exclude_id):
        raise CountryConflictError(
            "name", fields["name"], "A country with this name already exists"
        )
    if service.exists_by_iso2(session, fields["iso2"], exclude_id):
        raise CountryConflictError(
            "iso2", fields["iso2"], "A country with this ISO2 code already exists"
        )
    if service.exists_by_iso3(session, fields["iso3"], exclude_id):
        raise CountryConflictError(
            "iso3", fields["iso3"], "A country with this ISO3 code already exists"
        )
    for code in fields["codes"]:
        if service.exists_by_country_code(session, code, exclude_id):
            raise CountryConflictError(
                "countryCode", code, "A country with this country code already exists"
            )
