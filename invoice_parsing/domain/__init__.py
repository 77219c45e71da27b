"""
Domain слой домена Invoice Parsing.

Содержит интерфейсы (абстрактные классы) и исключения.
"""

from .interfaces import (
    ILanguageDetector,
    ILocaleExtractor,
    IInvoiceValidator,
)

from .exceptions import (
    ParsingError,
    ParsingConfigurationError,
    ExtractorNotFoundError,
)

__all__ = [
    # Интерфейсы
    "ILanguageDetector",
    "ILocaleExtractor",
    "IInvoiceValidator",

    # Исключения
    "ParsingError",
    "ParsingConfigurationError",
    "ExtractorNotFoundError",
]
