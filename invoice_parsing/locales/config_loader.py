"""
Config Loader для конфигураций локалей.

ЦКП: Загрузка единой модели LocaleConfig для локали.

Архитектурный принцип:
- Единая модель LocaleConfig для всех локалей (и generic)
- Общие списки паттернов лежат в base.yaml
- Локаль подключает их выборочно через $extends
- Загруженные конфиги кешируются и не изменяются
"""

from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional

import yaml
from loguru import logger
from pydantic import ValidationError

from config.settings import LOCALES_DIR
from ..domain.exceptions import ParsingConfigurationError
from .locale_config import LocaleConfig


GENERIC_LOCALE = "GENERIC"


class ConfigLoader:
    """
    Загрузчик конфигураций локалей.

    Кеш общий для всех экземпляров (classmethod API), экземпляр
    нужен только для передачи в stages через DI.
    """

    _config_dir: ClassVar[Optional[Path]] = None
    _cache: ClassVar[Dict[str, LocaleConfig]] = {}

    def load(self, locale_code: str) -> LocaleConfig:
        return self.load_locale(locale_code)

    def available_locales(self) -> List[str]:
        return self.list_locales()

    @classmethod
    def config_dir(cls) -> Path:
        return Path(cls._config_dir) if cls._config_dir is not None else LOCALES_DIR

    @classmethod
    def set_config_dir(cls, config_dir: Optional[Path]) -> None:
        """Переключает директорию конфигов и сбрасывает кеш."""
        cls._config_dir = config_dir
        cls._cache = {}

    @classmethod
    def load_locale(cls, locale_code: str) -> LocaleConfig:
        """
        Загружает конфигурацию локали из YAML файлов (с кешированием).

        Raises:
            ParsingConfigurationError: Нет файла, битый YAML или невалидная структура
        """
        code = locale_code.upper()
        if code in cls._cache:
            return cls._cache[code]

        locale_config = cls._load_locale_yaml(cls.config_dir(), code)
        cls._cache[code] = locale_config

        logger.debug(
            f"[ConfigLoader] Загружен LocaleConfig для {code}: "
            f"{len(locale_config.detection.high)} high-маркеров, "
            f"{len(locale_config.item_patterns)} item_patterns"
        )
        return locale_config

    @classmethod
    def list_locales(cls) -> List[str]:
        """Коды всех локалей, у которых есть parsing.yaml (без generic)."""
        config_dir = cls.config_dir()
        if not config_dir.exists():
            logger.warning(f"[ConfigLoader] Директория локалей не найдена: {config_dir}")
            return []
        return sorted(
            d.name.upper() for d in config_dir.iterdir()
            if d.is_dir()
            and not d.name.startswith(("_", "."))
            and d.name.upper() != GENERIC_LOCALE
            and (d / "parsing.yaml").exists()
        )

    @classmethod
    def _load_base_config(cls, config_dir: Path) -> dict:
        """Загружает базовую конфигурацию из base.yaml."""
        base_file = config_dir / "base.yaml"

        if not base_file.exists():
            logger.warning(f"[ConfigLoader] base.yaml не найден: {base_file}")
            return {}

        with open(base_file, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _resolve_extends(cls, value: Any, base_config: dict) -> Any:
        """
        Обрабатывает выборочное наследование через $extends в списках.

        Поддерживает форматы элемента списка:
        - Строка: "$extends: key"
        - Словарь: {"$extends": "key"} (YAML без кавычек)

        Вложенные словари обходятся рекурсивно.
        """
        if isinstance(value, dict):
            return {k: cls._resolve_extends(v, base_config) for k, v in value.items()}

        if isinstance(value, list):
            result = []
            for item in value:
                extended_key = None

                if isinstance(item, str) and item.startswith("$extends:"):
                    extended_key = item.split(":", 1)[1].strip()
                elif isinstance(item, dict) and "$extends" in item:
                    extended_key = item["$extends"]

                if extended_key:
                    extended = base_config.get(extended_key, [])
                    if not extended:
                        logger.warning(f"[ConfigLoader] Ключ '{extended_key}' для $extends не найден в base.yaml")
                    else:
                        logger.trace(f"[ConfigLoader] Inheriting {len(extended)} items for '{extended_key}'")
                    result.extend(cls._resolve_extends(extended, base_config))
                else:
                    result.append(item)
            return result

        return value

    @classmethod
    def _load_locale_yaml(cls, config_dir: Path, locale_code: str) -> LocaleConfig:
        """Загружает конфиг локали из YAML файла и валидирует его."""
        base_config = cls._load_base_config(config_dir)

        config_file = config_dir / locale_code / "parsing.yaml"
        if not config_file.exists():
            # Директории могут быть в нижнем регистре
            config_file = config_dir / locale_code.lower() / "parsing.yaml"

        if not config_file.exists():
            raise ParsingConfigurationError(
                f"Конфиг для {locale_code} не найден: {config_file}",
                component="ConfigLoader",
            )

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ParsingConfigurationError(
                f"Битый YAML: {config_file}", component="ConfigLoader", original_error=e
            )

        if "code" not in config_data:
            raise ParsingConfigurationError(
                f"Отсутствует code в {config_file}", component="ConfigLoader"
            )

        resolved = cls._resolve_extends(config_data, base_config)

        try:
            return LocaleConfig(**resolved)
        except ValidationError as e:
            raise ParsingConfigurationError(
                f"Невалидная конфигурация {config_file}",
                component="ConfigLoader",
                original_error=e,
            )
