"""
DTO контракт: Invoice Parsing -> потребители (экспорт, отчёты, UI).

Структурированный результат парсинга счёта. Денежные поля записи остаются
строками в исходном локальном формате ("$86.38", "159,98 €").
При сериализации через to_dict() ключи в camelCase.
"""

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Severity = Literal["critical", "high", "warning"]


class _CamelModel(BaseModel):
    """Базовая модель: frozen, camelCase-алиасы при сериализации."""

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class InvoiceItem(_CamelModel):
    """Позиция счёта."""

    description: str = Field(..., description="Описание товара (пробелы нормализованы)")
    quantity: int = Field(1, description="Количество (1, если явно не указано)")
    unit_price: Optional[Decimal] = Field(None, description="Цена за единицу")
    total_price: Optional[Decimal] = Field(None, description="Цена за позицию")
    price: Optional[str] = Field(None, description="Цена как в документе (локальный формат)")

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be positive")
        return v


class LanguageDetectionResult(_CamelModel):
    """Результат определения языка/локали."""

    language: str = Field(..., description="Код локали (EN, DE, ...) или UNKNOWN")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Уверенность 0..1")
    evidence: str = Field("", description="Человекочитаемое объяснение")
    supported: bool = Field(False, description="Есть ли для языка свой экстрактор")


class Issue(_CamelModel):
    """Проблема, найденная валидатором."""

    type: str = Field(..., description="Тип проблемы (item_sum_mismatch, missing_date, ...)")
    severity: Severity = Field(..., description="critical | high | warning")
    message: str = Field(..., description="Описание проблемы")
    fields: List[str] = Field(default_factory=list, description="Затронутые поля записи")


class ValidationResult(_CamelModel):
    """Результат валидации записи."""

    score: int = Field(100, ge=0, le=100, description="Оценка качества 0..100")
    is_valid: bool = Field(True, description="False, если есть critical/high проблемы")
    errors: List[Issue] = Field(default_factory=list, description="Проблемы critical/high")
    warnings: List[Issue] = Field(default_factory=list, description="Проблемы warning")
    summary: str = Field("", description="Краткая сводка")


class InvoiceRecord(_CamelModel):
    """
    Структурированная запись счёта.

    ЦКП: Полностью собранная запись за один проход экстрактора.
    Валидация присоединяется копией через model_copy(update=...).
    """

    order_number: Optional[str] = Field(None, description="Номер заказа NNN-NNNNNNN-NNNNNNN")
    order_date: Optional[str] = Field(None, description="Дата заказа в формате документа")
    items: List[InvoiceItem] = Field(default_factory=list, description="Позиции счёта")
    subtotal: Optional[str] = Field(None, description="Промежуточный итог")
    shipping: Optional[str] = Field(None, description="Доставка")
    tax: Optional[str] = Field(None, description="Налог")
    discount: Optional[str] = Field(None, description="Скидка")
    total: Optional[str] = Field(None, description="Итого к оплате")
    currency: Optional[str] = Field(None, description="ISO код валюты")
    vendor: Optional[str] = Field(None, description="Продавец (из конфига локали)")
    language_detection: Optional[LanguageDetectionResult] = Field(
        None, description="Результат определения языка"
    )
    validation: Optional[ValidationResult] = Field(None, description="Результат валидации")
    processing_metadata: Optional[Dict[str, Any]] = Field(
        None, description="Отладочные данные пайплайна (только при debug=True)"
    )
