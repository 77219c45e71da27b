"""
Конфигурации локалей: YAML + Pydantic модели.
"""

from .locale_config import LocaleConfig, CurrencyConfig, DetectionConfig, DetectionSignal
from .config_loader import ConfigLoader, GENERIC_LOCALE

__all__ = [
    "LocaleConfig",
    "CurrencyConfig",
    "DetectionConfig",
    "DetectionSignal",
    "ConfigLoader",
    "GENERIC_LOCALE",
]
