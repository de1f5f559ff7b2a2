from typing import Optional

from structlog import get_logger

from app.config import Settings, get_settings
from app.db import Base
from app.db.session import get_engine

# Register the tables on Base.metadata
from app.models import Country, CountryCode  # noqa: F401

logger = get_logger()


def create_tables(settings: Optional[Settings] = None) -> None:
    """Create any missing tables and indexes from the ORM metadata."""
    engine = get_engine(settings or get_settings())
    logger.info("Creating database tables", tables=sorted(Base.metadata.tables))
    Base.metadata.create_all(bind=engine)
