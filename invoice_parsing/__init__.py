"""
Invoice Parsing: текст счёта маркетплейса -> проверенная запись InvoiceRecord.

Публичный API:
- parse_invoice(raw_text, debug=False) -> InvoiceRecord | None
- get_available_parsers() -> {код: фабрика экстрактора}
- test_all_parsers(raw_text) -> {код: результат или ошибка}
- health_check() -> состояние стадий
"""

from .pipeline import (
    InvoicePipeline,
    PipelineResult,
    get_available_parsers,
    health_check,
    parse_invoice,
    test_all_parsers,
)

__all__ = [
    "InvoicePipeline",
    "PipelineResult",
    "get_available_parsers",
    "health_check",
    "parse_invoice",
    "test_all_parsers",
]
