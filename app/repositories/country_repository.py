"""
Country Repository - Domain-focused data access for countries and their
dialling codes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Select, exists, func, select
from sqlalchemy.orm import Session, selectinload

from app.models import Country, CountryCode
from app.schemas.country import CountrySearchRequest, CountrySortField


def primary_code_subquery():
    """Correlated scalar subquery for a country's primary code (NULL if none)."""
    return (
        select(CountryCode.code)
        .where(CountryCode.country_id == Country.id, CountryCode.is_primary.is_(True))
        .order_by(CountryCode.id)
        .limit(1)
        .correlate(Country)
        .scalar_subquery()
    )


SORT_COLUMNS = {
    CountrySortField.NAME: lambda: Country.name,
    CountrySortField.CONTINENT: lambda: Country.continent,
    CountrySortField.COUNTRY_CODE: primary_code_subquery,
    CountrySortField.ISO2: lambda: Country.iso2,
    CountrySortField.ISO3: lambda: Country.iso3,
    CountrySortField.CREATED_DATE: lambda: Country.created_date,
    CountrySortField.MODIFIED_DATE: lambda: Country.modified_date,
}


def build_country_codes(codes: Sequence[str], now: datetime) -> List[CountryCode]:
    """Code rows in the given order, the first one flagged primary."""
    return [
        CountryCode(code=code, is_primary=i == 0, created_date=now, modified_date=now)
        for i, code in enumerate(codes)
    ]


class CountryRepository(ABC):
    """Repository interface for Country operations."""

    @abstractmethod
    def get_by_id(self, db: Session, country_id: int) -> Optional[Country]:
        """Get country, with its codes, by ID."""
        pass

    @abstractmethod
    def exists(self, db: Session, country_id: int) -> bool:
        pass

    @abstractmethod
    def exists_by_name(
        self, db: Session, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_iso2(
        self, db: Session, iso2: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_iso3(
        self, db: Session, iso3: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def exists_by_country_code(
        self, db: Session, code: str, exclude_id: Optional[int] = None
    ) -> bool:
        pass

    @abstractmethod
    def search(
        self, db: Session, request: CountrySearchRequest
    ) -> Tuple[List[Country], int]:
        """Return one page of matching countries and the total match count."""
        pass

    @abstractmethod
    def get_continents(self, db: Session) -> List[str]:
        pass

    @abstractmethod
    def create(
        self,
        db: Session,
        *,
        name: str,
        continent: str,
        iso2: str,
        iso3: str,
        codes: Sequence[str],
        commit: bool = True,
    ) -> Country:
        pass

    @abstractmethod
    def replace(
        self,
        db: Session,
        *,
        db_obj: Country,
        name: str,
        continent: str,
        iso2: str,
        iso3: str,
        codes: Sequence[str],
        commit: bool = True,
    ) -> Country:
        pass

    @abstractmethod
    def remove(self, db: Session, *, db_obj: Country, commit: bool = True) -> None:
        pass


class CountryRepositoryImpl(CountryRepository):
    """SQLAlchemy implementation of CountryRepository."""

    def get_query(self, country_id: int) -> Select:
        return (
            select(Country)
            .where(Country.id == country_id)
            .options(selectinload(Country.codes))
        )

    def get_by_id(self, db: Session, country_id: int) -> Optional[Country]:
        return db.execute(self.get_query(country_id)).scalar_one_or_none()

    def exists(self, db: Session, country_id: int) -> bool:
        return bool(db.scalar(select(exists().where(Country.id == country_id))))

    def _exists_where(self, db: Session, *criteria) -> bool:
        return bool(db.scalar(select(exists().where(*criteria))))

    def exists_by_name(
        self, db: Session, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        criteria = [Country.name == name]
        if exclude_id is not None:
            criteria.append(Country.id != exclude_id)
        return self._exists_where(db, *criteria)

    def exists_by_iso2(
        self, db: Session, iso2: str, exclude_id: Optional[int] = None
    ) -> bool:
        criteria = [Country.iso2 == iso2]
        if exclude_id is not None:
            criteria.append(Country.id != exclude_id)
        return self._exists_where(db, *criteria)

    def exists_by_iso3(
        self, db: Session, iso3: str, exclude_id: Optional[int] = None
    ) -> bool:
        criteria = [Country.iso3 == iso3]
        if exclude_id is not None:
            criteria.append(Country.id != exclude_id)
        return self._exists_where(db, *criteria)

    def exists_by_country_code(
        self, db: Session, code: str, exclude_id: Optional[int] = None
    ) -> bool:
        criteria = [CountryCode.code == code]
        if exclude_id is not None:
            criteria.append(CountryCode.country_id != exclude_id)
        return self._exists_where(db, *criteria)

    def get_filtered_query(self, request: CountrySearchRequest) -> Select:
        """
        Select countries matching every supplied filter.

        Ordering and pagination must be applied after the filters, and the
        count taken before pagination.
        """
        query = select(Country)

        if request.name:
            query = query.where(Country.name.contains(request.name, autoescape=True))
        if request.continent:
            query = query.where(
                Country.continent.contains(request.continent, autoescape=True)
            )
        if request.iso2:
            query = query.where(Country.iso2 == request.iso2)
        if request.iso3:
            query = query.where(Country.iso3 == request.iso3)
        if request.country_code:
            # Any of the country's codes, not only the primary
            query = query.where(
                Country.codes.any(CountryCode.code == request.country_code)
            )
        return query

    @staticmethod
    def apply_ordering(query: Select, request: CountrySearchRequest) -> Select:
        column = SORT_COLUMNS.get(request.sort_by, SORT_COLUMNS[CountrySortField.NAME])()
        if request.descending:
            return query.order_by(column.desc(), Country.id.desc())
        return query.order_by(column.asc(), Country.id.asc())

    @staticmethod
    def apply_pagination(query: Select, *, page_number: int, page_size: int) -> Select:
        return query.offset((page_number - 1) * page_size).limit(page_size)

    def count_query(self, db: Session, query: Select) -> int:
        subquery = query.order_by(None).subquery()
        return db.scalar(select(func.count()).select_from(subquery))

    def search(
        self, db: Session, request: CountrySearchRequest
    ) -> Tuple[List[Country], int]:
        query = self.get_filtered_query(request)
        total = self.count_query(db, query)

        query = self.apply_ordering(query, request)
        query = self.apply_pagination(
            query, page_number=request.page_number, page_size=request.page_size
        ).options(selectinload(Country.codes))

        items = list(db.scalars(query).all())
        return items, total

    def get_continents(self, db: Session) -> List[str]:
        query = select(Country.continent).distinct().order_by(Country.continent)
        return list(db.scalars(query).all())

    def create(
        self,
        db: Session,
        *,
        name: str,
        continent: str,
        iso2: str,
        iso3: str,
        codes: Sequence[str],
        commit: bool = True,
    ) -> Country:
        now = datetime.utcnow()
        orm_obj = Country(
            name=name,
            continent=continent,
            iso2=iso2,
            iso3=iso3,
            created_date=now,
            modified_date=now,
            codes=build_country_codes(codes, now),
        )
        db.add(orm_obj)
        if commit:
            db.commit()
            db.refresh(orm_obj)
        else:
            db.flush()
        return orm_obj

    def replace(
        self,
        db: Session,
        *,
        db_obj: Country,
        name: str,
        continent: str,
        iso2: str,
        iso3: str,
        codes: Sequence[str],
        commit: bool = True,
    ) -> Country:
        """
        Overwrite a country's fields and swap out all of its codes.

        The old code rows are deleted (delete-orphan) rather than merged with
        the new ones.
        """
        now = datetime.utcnow()
        db_obj.name = name
        db_obj.continent = continent
        db_obj.iso2 = iso2
        db_obj.iso3 = iso3
        db_obj.modified_date = now

        db_obj.codes.clear()
        # Flush the deletes so the new rows are inserted afterwards
        db.flush()
        db_obj.codes.extend(build_country_codes(codes, now))

        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def remove(self, db: Session, *, db_obj: Country, commit: bool = True) -> None:
        db.delete(db_obj)
        if commit:
            db.commit()
        else:
            db.flush()


# Create singleton instance for backward compatibility
country_repository = CountryRepositoryImpl()
