import enum
from functools import lru_cache
from typing import Any, List, Optional, Union

from pydantic import AnyHttpUrl, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog import get_logger

logger = get_logger()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Country Service API"
    API_V1_STR: str = "/v1"

    POSTGRESQL_SERVER: str = "localhost"
    POSTGRESQL_DATABASE: str = "postgres"
    POSTGRESQL_USER: str = "postgres"
    POSTGRESQL_PASSWORD: str = ""

    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 10

    # The schema is owned by the ORM metadata, there are no migrations
    CREATE_TABLES_ON_STARTUP: bool = True

    SQLALCHEMY_DATABASE_URI: str | None = Field(None, validate_default=True)

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_sqlalchemy_connection(
        cls, v: Optional[str], info: ValidationInfo
    ) -> Any:
        if isinstance(v, str):
            # If a string is provided (e.g. via environment variable) we just use that
            return v

        values = info.data
        # Otherwise, assemble a sqlalchemy connection string from the other provided values.
        db_host = values.get("POSTGRESQL_SERVER")
        db_user = values.get("POSTGRESQL_USER")
        db_password = values.get("POSTGRESQL_PASSWORD")
        db_name = values.get("POSTGRESQL_DATABASE")

        connection_string = f"postgresql://{db_user}:{db_password}@{db_host}/{db_name}"
        logger.debug("Assembled database connection string", host=db_host, db=db_name)
        return connection_string

    # Country entities and the continents list share this lifetime
    COUNTRY_CACHE_ENABLED: bool = True
    COUNTRY_CACHE_DURATION_MINUTES: int = Field(60, ge=1)
    SEARCH_CACHE_DURATION_MINUTES: int = Field(30, ge=1)
    # Total cost of resident entries. A country costs 1, a search page costs
    # one unit per item it holds.
    MAX_CACHE_SIZE: int = Field(1000, ge=100)

    # BACKEND_CORS_ORIGINS is a JSON-formatted list of allowed request origins
    # e.g: '["http://localhost", "http://localhost:4200", "http://localhost:3000"]'
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    class LoggingLevel(str, enum.Enum):
        DEBUG = "DEBUG"
        INFO = "INFO"
        WARNING = "WARNING"

    LOGGING_LEVEL: LoggingLevel = LoggingLevel.INFO
    SQLALCHEMY_LOGGING_LEVEL: LoggingLevel = LoggingLevel.WARNING
    # Cache hits, misses and invalidations are logged at debug level
    SERVICES_LOGGING_LEVEL: LoggingLevel = LoggingLevel.INFO

    # Capture uvicorn's access log messages in our logging stack
    LOG_UVICORN_ACCESS: bool = True
    LOG_AS_JSON: bool = False
    ENABLE_OTEL_TRACING: bool = False
    DEBUG: bool = False

    model_config = SettingsConfigDict(case_sensitive=True, use_enum_values=True)

    @property
    def country_cache_ttl_seconds(self) -> int:
        return self.COUNTRY_CACHE_DURATION_MINUTES * 60

    @property
    def search_cache_ttl_seconds(self) -> int:
        return self.SEARCH_CACHE_DURATION_MINUTES * 60


@lru_cache()
def get_settings() -> Settings:
    return Settings()
