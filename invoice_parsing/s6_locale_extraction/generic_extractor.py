"""
Generic Extractor - Fallback для неизвестных и неподдерживаемых языков.

ЦКП: Хотя бы структурные поля (номер заказа, дата, суммы с любой валютой)
там, где нет своей локали.
"""

from typing import Optional

from ..locales import ConfigLoader, GENERIC_LOCALE, LocaleConfig
from .locale_extractor import LocaleExtractor


class GenericExtractor(LocaleExtractor):
    """
    Best-effort экстрактор на конфиге GENERIC.

    Номер заказа: только структурный паттерн 3-7-7.
    Дата: общий поиск по всем известным форматам.
    Позиции: консервативная строка "описание цена".
    """

    def __init__(self, config: Optional[LocaleConfig] = None):
        super().__init__(config or ConfigLoader.load_locale(GENERIC_LOCALE))
