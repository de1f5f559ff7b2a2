from .country import Country
from .country_code import CountryCode

__all__ = ["Country", "CountryCode"]
