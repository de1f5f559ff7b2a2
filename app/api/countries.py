from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session
from starlette import status
from starlette.requests import Request
from starlette.responses import Response
from structlog import get_logger

from app.api.dependencies.countries import (
    check_for_conflicts,
    get_country_search_request,
)
from app.api.dependencies.service_layer import (
    get_country_service,
    handle_service_errors,
)
from app.db.session import get_session
from app.schemas.country import (
    CountryCreateIn,
    CountryDetail,
    CountryPage,
    CountrySearchRequest,
    CountryUpdateIn,
)
from app.services.countries import CountryServiceBase

logger = get_logger()

router = APIRouter(tags=["Countries"])


def _country_not_found(country_id: int) -> HTTPException:
    logger.warning("Country not found", country_id=country_id)
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Country with id {country_id} not found",
    )


# The static routes must be declared before "/{country_id}"
@router.get("/search", response_model=CountryPage)
def search_countries(
    search: CountrySearchRequest = Depends(get_country_search_request),
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    """
    Search countries with optional filters, sorting and pagination.

    `name` and `continent` match anywhere in the value, `iso2`, `iso3` and
    `countryCode` must match exactly. `countryCode` matches any of a
    country's dialling codes, not only the primary one.
    """
    logger.debug("Searching countries", search=search.model_dump(exclude_none=True))
    return service.search(session, search)


@router.get("/continents", response_model=List[str])
def get_continents(
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    """Distinct continent names in ascending order."""
    return service.get_continents(session)


@router.get("/{country_id}", response_model=CountryDetail, name="get_country")
def get_country(
    country_id: int = Path(..., description="Country id"),
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    country = service.get_by_id(session, country_id)
    if country is None:
        raise _country_not_found(country_id)
    return country


@router.post("", response_model=CountryDetail, status_code=status.HTTP_201_CREATED)
@handle_service_errors
def create_country(
    data: CountryCreateIn,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    """
    Add a country.

    `countryCode` is a comma separated list of dialling codes, the first of
    which becomes the primary code. Responds with 409 if the name, either ISO
    code or any of the dialling codes is already taken.
    """
    check_for_conflicts(service, session, data)
    country = service.create(session, data)
    response.headers["Location"] = str(
        request.url_for("get_country", country_id=country.id)
    )
    return country


@router.put("/{country_id}", response_model=CountryDetail)
@handle_service_errors
def update_country(
    data: CountryUpdateIn,
    country_id: int = Path(..., description="Country id"),
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    """
    Replace a country's fields and its full set of dialling codes.
    """
    if not service.exists(session, country_id):
        raise _country_not_found(country_id)

    check_for_conflicts(service, session, data, exclude_id=country_id)
    country = service.update(session, country_id, data)
    if country is None:
        # Deleted since the existence check
        raise _country_not_found(country_id)
    return country


@router.delete("/{country_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_country(
    country_id: int = Path(..., description="Country id"),
    session: Session = Depends(get_session),
    service: CountryServiceBase = Depends(get_country_service),
):
    """Delete a country along with all of its dialling codes."""
    if not service.delete(session, country_id):
        raise _country_not_found(country_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
