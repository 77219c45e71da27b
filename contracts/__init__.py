"""
Контракты DTO проекта Invoice Parsing.

Все контракты используют Pydantic v2 для валидации.

Контракты:
- Вход: RawText (raw_text_dto.py)
- Выход: InvoiceRecord (invoice_dto.py)
"""

# Вход пайплайна
from .raw_text_dto import RawText

# Выход пайплайна
from .invoice_dto import (
    InvoiceRecord,
    InvoiceItem,
    LanguageDetectionResult,
    ValidationResult,
    Issue,
    Severity,
)

__all__ = [
    "RawText",
    "InvoiceRecord",
    "InvoiceItem",
    "LanguageDetectionResult",
    "ValidationResult",
    "Issue",
    "Severity",
]
