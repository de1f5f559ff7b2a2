from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base

if TYPE_CHECKING:
    from app.models.country_code import CountryCode


class Country(Base):
    __tablename__ = "countries"  # type: ignore[assignment]

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, nullable=False, autoincrement=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # E.g. "North America", "Europe"
    continent: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # The ISO 3166-1 alpha-2 and alpha-3 codes. E.g. New Zealand is NZ and NZL
    # https://en.wikipedia.org/wiki/List_of_ISO_3166_country_codes#Current_ISO_3166_country_codes
    iso2: Mapped[str] = mapped_column(String(2), nullable=False, unique=True)
    iso3: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)

    # Ordered by insertion so the first code written is the first code read
    codes: Mapped[List["CountryCode"]] = relationship(
        "CountryCode",
        back_populates="country",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CountryCode.id",
    )

    created_date: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        default=datetime.utcnow,
    )
    modified_date: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    @property
    def primary_code(self) -> Optional[str]:
        return next((c.code for c in self.codes if c.is_primary), None)

    def __repr__(self) -> str:
        return f"<Country id={self.id} - '{self.name}' ({self.iso3})>"
