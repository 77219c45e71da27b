"""
DTO для конфигурации локали.

Содержит все специфичные для страны параметры:
- Валюта (символы, разделители, форматирование)
- Паттерны определения языка (веса high/medium/signals)
- Паттерны извлечения (номер заказа, дата, товары, суммы)

Использует Pydantic для валидации структуры конфигурации.
Все regex компилируются при валидации: битый паттерн = ошибка загрузки.
"""

import re
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..extraction.amount_parser import format_amount


# Плейсхолдер суммы с валютой в item_patterns
PRICE_PLACEHOLDER = "{price}"


def _check_patterns(patterns: List[str]) -> List[str]:
    for pattern in patterns:
        try:
            re.compile(pattern.replace(PRICE_PLACEHOLDER, r"(?P<price>\d+)"))
        except re.error as e:
            raise ValueError(f"Невалидный regex '{pattern}': {e}")
    return patterns


class CurrencyConfig(BaseModel):
    """Конфигурация валюты."""
    code: str = Field(..., description="ISO код (EUR, USD, GBP, JPY)")
    symbol: str = Field(..., description="Основной символ (€, $, £, ¥, CHF)")
    aliases: List[str] = Field(default_factory=list, description="Другие обозначения (EUR, 円)")
    decimal_separator: str = Field(..., description='Разделитель дроби ("," или ".")')
    thousands_separator: str = Field(..., description='Разделитель тысяч (".", ",", пробел, апостроф)')
    symbol_position: str = Field(..., description='"before" или "after"')
    symbol_spacing: bool = Field(False, description="Пробел между символом и числом при before")
    decimals: int = Field(2, ge=0, le=3, description="Знаков после запятой (JPY = 0)")

    model_config = ConfigDict(frozen=True)

    @field_validator('symbol_position')
    @classmethod
    def validate_symbol_position(cls, v):
        if v not in ["before", "after"]:
            raise ValueError(f'symbol_position должен быть "before" или "after", получено: {v}')
        return v

    @field_validator('decimal_separator')
    @classmethod
    def validate_decimal_separator(cls, v):
        if v not in [",", "."]:
            raise ValueError(f'Разделитель дроби должен быть "," или ".", получено: {v}')
        return v

    @field_validator('thousands_separator')
    @classmethod
    def validate_thousands_separator(cls, v):
        if v not in [",", ".", " ", "'"]:
            raise ValueError(f'Разделитель тысяч должен быть одним из [",", ".", " ", "\'"], получено: {v}')
        return v

    @property
    def all_symbols(self) -> List[str]:
        return [self.symbol] + [a for a in self.aliases if a != self.symbol]

    def render(self, number_text: str) -> str:
        """Оборачивает число (как в документе) символом валюты."""
        if self.symbol_position == "before":
            sep = " " if self.symbol_spacing else ""
            return f"{self.symbol}{sep}{number_text}"
        return f"{number_text} {self.symbol}"

    def format(self, value: Decimal) -> str:
        """Форматирует Decimal по правилам валюты ("1.234,56 €", "$79.98", "¥1,234")."""
        number_text = format_amount(
            value,
            decimal_separator=self.decimal_separator,
            thousands_separator=self.thousands_separator,
            decimals=self.decimals,
        )
        return self.render(number_text)


class DetectionSignal(BaseModel):
    """
    Форматный сигнал языка (валюта, формат даты).

    Без max_weight: weight добавляется один раз при любом совпадении.
    С max_weight: weight за каждое совпадение, но не больше max_weight.
    """
    pattern: str
    weight: float = Field(..., gt=0.0, le=1.0)
    max_weight: Optional[float] = Field(None, gt=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @field_validator('pattern')
    @classmethod
    def validate_pattern(cls, v):
        _check_patterns([v])
        return v


class DetectionConfig(BaseModel):
    """Паттерны Stage 4 (Language Detection)."""
    high: List[str] = Field(default_factory=list, description="Сильные маркеры (+0.15)")
    medium: List[str] = Field(default_factory=list, description="Средние маркеры (+0.08)")
    signals: List[DetectionSignal] = Field(default_factory=list, description="Валюта и даты")

    model_config = ConfigDict(frozen=True)

    @field_validator('high', 'medium')
    @classmethod
    def validate_patterns(cls, v):
        return _check_patterns(v)


class LocaleConfig(BaseModel):
    """
    Полная конфигурация локали.

    Загружается из YAML файла (locales/<CODE>/parsing.yaml) и используется
    детектором языка и локальным экстрактором.
    """
    code: str = Field(..., description="Код локали (EN, DE, GB, ..., GENERIC)")
    name: str = Field(..., description="Название (English, German, ...)")
    currency: Optional[CurrencyConfig] = Field(None, description="None = любая валюта (generic)")
    supported: bool = Field(True, description="Участвует в определении языка")
    vendor: Optional[str] = Field(None, description="Продавец в записи счёта (None = не известен)")

    detection: DetectionConfig = Field(default_factory=DetectionConfig)

    # Stage 6: Extraction
    order_number_patterns: List[str] = Field(default_factory=list)
    order_date_patterns: List[str] = Field(default_factory=list)
    month_first: bool = Field(False, description="Числовые даты MM/DD/YYYY (US)")
    item_patterns: List[str] = Field(default_factory=list)
    asin_items: bool = Field(False, description="Товары блоками 'ASIN:' + строка цены")
    skip_labels: List[str] = Field(default_factory=list, description="Итоговые строки, не товары")
    subtotal_labels: List[str] = Field(default_factory=list)
    shipping_labels: List[str] = Field(default_factory=list)
    tax_labels: List[str] = Field(default_factory=list)
    total_labels: List[str] = Field(default_factory=list)
    discount_labels: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not v or not v.isalpha():
            raise ValueError(f'Код локали должен состоять из букв (EN, DE, ...), получено: {v}')
        return v.upper()

    @field_validator(
        'order_number_patterns', 'order_date_patterns', 'item_patterns', 'skip_labels',
        'subtotal_labels', 'shipping_labels', 'tax_labels', 'total_labels', 'discount_labels',
    )
    @classmethod
    def validate_patterns(cls, v):
        return _check_patterns(v)
