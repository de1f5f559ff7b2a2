import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class PagedResult(BaseModel, Generic[DataT]):
    """One page of results along with the size of the whole result set."""

    items: List[DataT]
    total_count: int = Field(..., ge=0, description="Total number of matching items")
    page_number: int = Field(1, ge=1, description="Current page number (1-based)")
    page_size: int = Field(50, ge=1, description="Maximum number of items per page")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @computed_field(alias="totalPages")  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @computed_field(alias="hasPreviousPage")  # type: ignore[misc]
    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @computed_field(alias="hasNextPage")  # type: ignore[misc]
    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages
