"""
Интерфейсы (абстрактные классы) для домена Invoice Parsing.

Домен отвечает за:
1. Нормализацию сырого текста счёта
2. Определение формата и языка
3. Извлечение полей локальным экстрактором
4. Валидацию извлечённой записи
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from contracts.invoice_dto import (
    InvoiceItem,
    InvoiceRecord,
    LanguageDetectionResult,
    ValidationResult,
)


class ILanguageDetector(ABC):
    """Интерфейс для детектора языка счёта."""

    @abstractmethod
    def detect(self, text: str) -> LanguageDetectionResult:
        """
        Определяет язык/локаль счёта.

        Args:
            text: Нормализованный текст счёта

        Returns:
            LanguageDetectionResult (UNKNOWN при низкой уверенности)
        """
        pass


class ILocaleExtractor(ABC):
    """
    Интерфейс локального экстрактора.

    Все методы тотальны: при отсутствии данных возвращают None или [],
    исключений не бросают.
    """

    language_code: str

    @abstractmethod
    def extract_order_number(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def extract_order_date(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def extract_items(self, text: str) -> List[InvoiceItem]:
        pass

    @abstractmethod
    def extract_subtotal(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def extract_shipping(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def extract_tax(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def extract_total(self, text: str) -> Optional[str]:
        pass

    @abstractmethod
    def calculate_subtotal_from_items(self, items: List[InvoiceItem]) -> Optional[str]:
        """Сумма цен позиций в формате валюты локали, None если ничего не распарсилось."""
        pass

    @abstractmethod
    def extract(self, text: str) -> InvoiceRecord:
        """
        Извлекает полную запись счёта.

        Args:
            text: Текст после format-specific нормализации

        Returns:
            InvoiceRecord без validation и language_detection
        """
        pass


class IInvoiceValidator(ABC):
    """Интерфейс валидатора записи."""

    @abstractmethod
    def validate(self, record: InvoiceRecord) -> ValidationResult:
        pass
