from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base

if TYPE_CHECKING:
    from app.models.country import Country


class CountryCode(Base):
    """
    An international dialling code for a country.

    Codes are not unique: the United States and Canada share "1", and
    Kazakhstan and Russia share "7". One code per country is flagged primary.
    """

    __tablename__ = "country_codes"  # type: ignore[assignment]

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, nullable=False, autoincrement=True
    )

    country_id: Mapped[int] = mapped_column(
        ForeignKey(
            "countries.id",
            name="fk_country_codes_country_id",
            ondelete="CASCADE",
        ),
        index=True,
        nullable=False,
    )
    country: Mapped["Country"] = relationship("Country", back_populates="codes")

    # E.g. "64", "+1", "1-809"
    code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    is_primary: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
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

    __table_args__ = (
        Index("ix_country_codes_country_id_is_primary", "country_id", "is_primary"),
    )

    def __repr__(self) -> str:
        primary = " (primary)" if self.is_primary else ""
        return f"<CountryCode country_id={self.country_id} code={self.code}{primary}>"
