from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel

from app.schemas import CaseInsensitiveStringEnum
from app.schemas.pagination import PagedResult

ISO2_PATTERN = r"^[A-Z]{2}$"
ISO3_PATTERN = r"^[A-Z]{3}$"
COUNTRY_CODE_PATTERN = r"^[\d\-\+]+$"

CountryCodeStr = Annotated[
    str, StringConstraints(min_length=1, max_length=20, pattern=COUNTRY_CODE_PATTERN)
]


def split_country_codes(value: str) -> List[str]:
    """
    Split the comma separated wire format into trimmed codes.

    >>> split_country_codes("1-809, 1-829,, 1-849 ")
    ['1-809', '1-829', '1-849']
    """
    return [code.strip() for code in value.split(",") if code.strip()]


class CountrySortField(CaseInsensitiveStringEnum):
    NAME = "name"
    CONTINENT = "continent"
    COUNTRY_CODE = "countrycode"
    ISO2 = "iso2"
    ISO3 = "iso3"
    CREATED_DATE = "createddate"
    MODIFIED_DATE = "modifieddate"


_SORT_FIELD_VALUES = {f.value for f in CountrySortField}


class SortDirection(CaseInsensitiveStringEnum):
    ASC = "asc"
    DESC = "desc"


class CountryCodeDetail(BaseModel):
    id: int
    code: str
    is_primary: bool

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


class CountryDetail(BaseModel):
    id: int
    name: str
    continent: str
    # The primary dialling code, if the country has one
    country_code: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("countryCode", "country_code", "primary_code"),
        serialization_alias="countryCode",
    )
    country_codes: List[CountryCodeDetail] = Field(
        default_factory=list,
        validation_alias=AliasChoices("countryCodes", "country_codes", "codes"),
        serialization_alias="countryCodes",
    )
    iso2: str
    iso3: str
    created_date: datetime
    modified_date: datetime

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


CountryPage = PagedResult[CountryDetail]


class CountryWriteIn(BaseModel):
    """
    Fields shared by the create and update request bodies.

    On the wire ``countryCode`` is a comma separated string such as
    ``"1-809, 1-829"``; it is parsed into a list of codes on the way in, the
    first of which becomes the primary code.
    """

    name: str = Field(..., min_length=1, max_length=100)
    continent: str = Field(..., min_length=1, max_length=50)
    country_codes: List[CountryCodeStr] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("countryCode", "country_codes"),
    )
    iso2: str = Field(..., pattern=r"^[A-Za-z]{2}$")
    iso3: str = Field(..., pattern=r"^[A-Za-z]{3}$")

    model_config = ConfigDict(populate_by_name=True)

    # Lengths apply to the trimmed value that gets stored
    @field_validator("name", "continent", mode="before")
    @classmethod
    def strip_whitespace(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("country_codes", mode="before")
    @classmethod
    def parse_country_codes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_country_codes(value)
        if isinstance(value, (list, tuple)):
            return [c.strip() if isinstance(c, str) else c for c in value]
        return value


class CountryCreateIn(CountryWriteIn):
    pass


class CountryUpdateIn(CountryWriteIn):
    pass


class CountrySearchRequest(BaseModel):
    """
    Filters, ordering and paging for a country search.

    Blank filters count as not supplied. Text filters are substring matches,
    the ISO and dialling code filters are exact.
    """

    name: Optional[str] = Field(None, max_length=100)
    continent: Optional[str] = Field(None, max_length=50)
    iso2: Optional[str] = Field(None, pattern=ISO2_PATTERN)
    iso3: Optional[str] = Field(None, pattern=ISO3_PATTERN)
    country_code: Optional[str] = Field(
        None, max_length=20, pattern=COUNTRY_CODE_PATTERN
    )
    page_number: int = Field(1, ge=1, le=2**31 - 1)
    page_size: int = Field(50, ge=1, le=1000)
    sort_by: CountrySortField = CountrySortField.NAME
    sort_direction: SortDirection = SortDirection.ASC

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator(
        "name", "continent", "iso2", "iso3", "country_code", mode="before"
    )
    @classmethod
    def blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("sort_by", mode="before")
    @classmethod
    def fallback_to_name(cls, value: Any) -> CountrySortField:
        if isinstance(value, CountrySortField):
            return value
        if isinstance(value, str) and value.strip().lower() in _SORT_FIELD_VALUES:
            return CountrySortField(value.strip())
        return CountrySortField.NAME

    @field_validator("sort_direction", mode="before")
    @classmethod
    def ascending_unless_desc(cls, value: Any) -> SortDirection:
        if isinstance(value, str) and value.strip().lower() == "desc":
            return SortDirection.DESC
        if value is SortDirection.DESC:
            return value
        return SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.sort_direction is SortDirection.DESC
