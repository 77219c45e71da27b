"""
Stage 4: Language Detection

ЦКП: Код локали + уверенность для выбора экстрактора.

Input: текст после Stage 3
Output: LanguageDetectionResult (language, confidence, evidence, supported)

Каждая поддерживаемая локаль оценивается независимо по своему
detection-блоку из YAML:
- high маркеры: +0.15 за каждый совпавший паттерн
- medium маркеры: +0.08 за каждый совпавший паттерн
- signals (валюта, формат даты): weight один раз, либо weight за
  каждое совпадение с потолком max_weight
Сумма ограничивается 1.0. Ниже MIN_LANGUAGE_CONFIDENCE язык = UNKNOWN.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from config.settings import LANGUAGE_PRIORITY, MIN_LANGUAGE_CONFIDENCE, UNKNOWN_LANGUAGE
from contracts.invoice_dto import LanguageDetectionResult
from ..domain.exceptions import ParsingConfigurationError
from ..domain.interfaces import ILanguageDetector
from ..locales import ConfigLoader, LocaleConfig


HIGH_MARKER_WEIGHT = 0.15
MEDIUM_MARKER_WEIGHT = 0.08


@dataclass
class DetectionScore:
    """Оценка одной локали."""
    code: str
    name: str
    score: float = 0.0
    high_matches: List[str] = field(default_factory=list)
    medium_matches: List[str] = field(default_factory=list)
    signal_matches: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "score": round(self.score, 2),
            "high_matches": len(self.high_matches),
            "medium_matches": len(self.medium_matches),
            "signal_matches": len(self.signal_matches),
        }


class LanguageDetector(ILanguageDetector):
    """
    Stage 4: Language Detection.

    ЦКП: Лучшая локаль по сумме весов совпавших паттернов.
    """

    def __init__(self, config_loader: Optional[ConfigLoader] = None):
        self.config_loader = config_loader or ConfigLoader()
        self._locales: Optional[List[LocaleConfig]] = None

    @property
    def locales(self) -> List[LocaleConfig]:
        """Поддерживаемые локали в порядке приоритета (ленивая загрузка)."""
        if self._locales is None:
            self._locales = self._load_locales()
        return self._locales

    def _load_locales(self) -> List[LocaleConfig]:
        priority = {code.strip().upper(): i for i, code in enumerate(LANGUAGE_PRIORITY)}
        codes = sorted(
            self.config_loader.available_locales(),
            key=lambda c: (priority.get(c, len(priority)), c),
        )

        locales = []
        for code in codes:
            try:
                locale_config = self.config_loader.load(code)
            except ParsingConfigurationError as e:
                logger.error(f"[LanguageDetector] Локаль {code} пропущена: {e}")
                continue
            if locale_config.supported:
                locales.append(locale_config)

        logger.debug(f"[LanguageDetector] Загружено локалей: {[l.code for l in locales]}")
        return locales

    def detect(self, text: str) -> LanguageDetectionResult:
        """
        Определяет язык счёта.

        Args:
            text: Текст после Stage 3

        Returns:
            LanguageDetectionResult, confidence всегда в [0, 1]
        """
        if not isinstance(text, str) or not text.strip():
            return LanguageDetectionResult(
                language=UNKNOWN_LANGUAGE,
                confidence=0.0,
                evidence="Empty text",
                supported=False,
            )

        scores = self.score_all(text)
        best: Optional[DetectionScore] = None
        for candidate in scores:
            # Порядок scores = порядок приоритета, строгое > оставляет первого при ничьей
            if best is None or candidate.score > best.score:
                best = candidate

        if best is None or best.score < MIN_LANGUAGE_CONFIDENCE:
            confidence = round(best.score, 2) if best else 0.0
            logger.warning(
                f"[LanguageDetector] Язык не определён (лучший score={confidence}), "
                f"будет использован generic экстрактор"
            )
            return LanguageDetectionResult(
                language=UNKNOWN_LANGUAGE,
                confidence=confidence,
                evidence="No language patterns above threshold",
                supported=False,
            )

        logger.debug(
            f"[LanguageDetector] {best.code} ({best.score:.2f}): "
            f"high={len(best.high_matches)}, medium={len(best.medium_matches)}, "
            f"signals={len(best.signal_matches)}"
        )
        return LanguageDetectionResult(
            language=best.code,
            confidence=round(best.score, 2),
            evidence=f"Detected {best.name} patterns",
            supported=True,
        )

    def score_all(self, text: str) -> List[DetectionScore]:
        """Оценки всех поддерживаемых локалей (в порядке приоритета)."""
        upper = text.upper()
        return [self.score_locale(upper, locale_config) for locale_config in self.locales]

    def score_locale(self, upper_text: str, locale_config: LocaleConfig) -> DetectionScore:
        """Оценка одной локали по уже приведённому к верхнему регистру тексту."""
        result = DetectionScore(code=locale_config.code, name=locale_config.name)
        detection = locale_config.detection
        score = 0.0

        for pattern in detection.high:
            if re.search(pattern, upper_text, re.IGNORECASE):
                score += HIGH_MARKER_WEIGHT
                result.high_matches.append(pattern)

        for pattern in detection.medium:
            if re.search(pattern, upper_text, re.IGNORECASE):
                score += MEDIUM_MARKER_WEIGHT
                result.medium_matches.append(pattern)

        for signal in detection.signals:
            if signal.max_weight is None:
                if re.search(signal.pattern, upper_text, re.IGNORECASE):
                    score += signal.weight
                    result.signal_matches.append(signal.pattern)
            else:
                count = len(re.findall(signal.pattern, upper_text, re.IGNORECASE))
                if count:
                    score += min(signal.weight * count, signal.max_weight)
                    result.signal_matches.append(signal.pattern)

        result.score = min(score, 1.0)
        logger.trace(f"[LanguageDetector] {locale_config.code}: {result.score:.2f}")
        return result

    def score_map(self, text: str) -> Dict[str, float]:
        """{код: score} для отладки."""
        if not isinstance(text, str):
            return {}
        return {s.code: round(s.score, 2) for s in self.score_all(text)}
