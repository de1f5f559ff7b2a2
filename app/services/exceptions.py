"""
Service Layer Exceptions - Domain-specific errors for service layer.

Services raise their own exceptions rather than HTTP exceptions, the API layer
converts them into responses.
"""


class ServiceException(Exception):
    """Base exception for all service layer errors."""

    pass


class CountryServiceError(ServiceException):
    """General country service error."""

    pass


class CountryConflictError(CountryServiceError):
    """A country already uses the given name, ISO code or dialling code."""

    def __init__(self, field: str, value: str, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"{message} ({field}={value!r})")
