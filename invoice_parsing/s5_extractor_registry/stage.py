"""
Stage 5: Extractor Registry

ЦКП: Экстрактор для кода языка из Stage 4.

Input: код локали (EN, DE, ...) или UNKNOWN
Output: ILocaleExtractor (GenericExtractor для неизвестных кодов)

Реестр = словарь {код: фабрика}. Новая локаль = новая директория
в locales/ с parsing.yaml, код реестра не меняется.
"""

from functools import partial
from typing import Callable, Dict, List, Optional

from loguru import logger

from config.settings import UNKNOWN_LANGUAGE
from ..domain.exceptions import ExtractorNotFoundError
from ..domain.interfaces import ILocaleExtractor
from ..locales import ConfigLoader, GENERIC_LOCALE
from ..s6_locale_extraction import GenericExtractor, LocaleExtractor


ExtractorFactory = Callable[[], ILocaleExtractor]


def _locale_factory(config_loader: ConfigLoader, code: str) -> ILocaleExtractor:
    return LocaleExtractor(config_loader.load(code))


class ExtractorRegistry:
    """
    Stage 5: Extractor Registry.

    ЦКП: Read-only отображение код -> экстрактор с generic fallback.
    Экземпляры экстракторов кешируются: они не хранят состояние документа.
    """

    def __init__(self, config_loader: Optional[ConfigLoader] = None):
        self.config_loader = config_loader or ConfigLoader()
        self._factories: Dict[str, ExtractorFactory] = {
            code: partial(_locale_factory, self.config_loader, code)
            for code in self.config_loader.available_locales()
        }
        self._instances: Dict[str, ILocaleExtractor] = {}
        self._generic: Optional[GenericExtractor] = None
        logger.debug(f"[ExtractorRegistry] Зарегистрировано локалей: {sorted(self._factories)}")

    @property
    def codes(self) -> List[str]:
        return sorted(self._factories)

    def available_parsers(self) -> Dict[str, ExtractorFactory]:
        """Копия реестра {код: фабрика}."""
        return dict(self._factories)

    def is_registered(self, language_code: Optional[str]) -> bool:
        return bool(language_code) and language_code.upper() in self._factories

    def get_generic(self) -> GenericExtractor:
        if self._generic is None:
            self._generic = GenericExtractor(self.config_loader.load(GENERIC_LOCALE))
        return self._generic

    def get_extractor(self, language_code: Optional[str], strict: bool = False) -> ILocaleExtractor:
        """
        Возвращает экстрактор для кода языка.

        Args:
            language_code: Код из LanguageDetectionResult (может быть UNKNOWN/None)
            strict: Бросать ExtractorNotFoundError вместо generic fallback

        Raises:
            ExtractorNotFoundError: Только при strict=True и незарегистрированном коде
        """
        code = language_code.upper() if isinstance(language_code, str) else None

        if code is None or code not in self._factories:
            if strict:
                raise ExtractorNotFoundError(
                    f"Нет экстрактора для языка '{language_code}'",
                    component="ExtractorRegistry",
                )
            if code != UNKNOWN_LANGUAGE:
                logger.warning(
                    f"[ExtractorRegistry] Язык '{language_code}' не зарегистрирован, generic экстрактор"
                )
            else:
                logger.debug("[ExtractorRegistry] Язык не определён, generic экстрактор")
            return self.get_generic()

        if code not in self._instances:
            self._instances[code] = self._factories[code]()
        return self._instances[code]
