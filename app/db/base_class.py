from typing import Any

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    id: Any
    __name__: str

    # Generate __tablename__ automatically
    # e.g, Class "Country" -> "countries"
    # Class "CountryCode" -> "countrycodes"
    @declared_attr
    def __tablename__(cls) -> str:
        cls_name = cls.__name__.lower()
        if cls_name.endswith("s"):
            return cls_name
        if cls_name.endswith("y"):
            return cls_name[:-1] + "ies"
        return cls_name + "s"
