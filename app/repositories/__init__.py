"""
Repository interfaces and implementations.

This module provides domain-focused repository interfaces that keep query
construction out of the service layer.
"""

from .country_repository import (
    CountryRepository,
    CountryRepositoryImpl,
    country_repository,
)

__all__ = [
    "CountryRepository",
    "CountryRepositoryImpl",
    "country_repository",
]
