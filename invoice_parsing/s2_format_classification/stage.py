"""
Stage 2: Format Classification

ЦКП: Тег раскладки маркетплейса для Stage 3.

Input: текст после Stage 1 (Light Normalization)
Output: FormatTag (domestic / regional / unknown)

Score-based подход:
- Каждый маркер раскладки (домен, метки, валюта, месяцы) даёт фиксированный вес
- Совпадение регистронезависимое, подстрокой
- Оба score ниже FORMAT_MIN_SCORE -> UNKNOWN
- При равенстве побеждает DOMESTIC (проверяется первым)
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from loguru import logger

from config.settings import FORMAT_MIN_SCORE


class FormatTag(str, Enum):
    """Раскладка счёта."""
    DOMESTIC = "domestic"
    REGIONAL = "regional"
    UNKNOWN = "unknown"


@dataclass
class FormatClassification:
    """
    Результат Stage 2: Format Classification.

    ЦКП: Тег + объяснение, почему выбран именно он.
    """
    tag: FormatTag
    confidence: int = 0
    quality_level: str = "VERY LOW"
    quality_action: str = "reject"
    scores: Dict[str, int] = field(default_factory=dict)
    subtype: Optional[str] = None
    matched_signals: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "format": self.tag.value,
            "confidence": self.confidence,
            "quality": {"level": self.quality_level, "action": self.quality_action},
            "scores": dict(self.scores),
            "subtype": self.subtype,
            "matched_signals": list(self.matched_signals),
        }


_ENGLISH_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_REGIONAL_MONTHS = [
    # Deutsch
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
    # Français
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
    # Español
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    # Italiano
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
]


def _unique(signals: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
    """Убирает повторы маркеров без учёта регистра (первый выигрывает)."""
    seen = set()
    result = []
    for marker, weight in signals:
        key = marker.lower()
        if key not in seen:
            seen.add(key)
            result.append((marker, weight))
    return result


class FormatClassifier:
    """
    Stage 2: Format Classification.

    ЦКП: domestic (amazon.com) vs regional (EU маркетплейсы).
    """

    DOMESTIC_SIGNALS: List[Tuple[str, int]] = _unique(
        [
            ("amazon.com", 40),
            ("Order #", 40),
            ("Order Placed:", 40),
            ("Shipped to:", 40),
            ("Sold by:", 40),
            ("Shipped by:", 40),
            ("$", 20),
            ("USD", 20),
        ]
        + [(month, 15) for month in _ENGLISH_MONTHS]
    )

    REGIONAL_SIGNALS: List[Tuple[str, int]] = _unique(
        [
            ("amazon.de", 40),
            ("amazon.fr", 40),
            ("amazon.it", 40),
            ("amazon.es", 40),
            ("amazon.co.uk", 40),
            ("amazon.nl", 40),
            ("amazon.se", 40),
            ("amazon.pl", 40),
            ("ASIN:", 40),
            ("€", 20),
            ("EUR", 20),
            ("£", 20),
            ("GBP", 20),
            ("CHF", 20),
        ]
        + [(month, 15) for month in _REGIONAL_MONTHS]
        + [
            ("Rechnung", 25),
            ("Commande", 25),
            ("Ordine", 25),
            ("Pedido", 25),
            ("Bestellung", 25),
            ("Facture", 25),
            ("Fattura", 25),
            ("Factura", 25),
        ]
    )

    # Индикаторы подтипа regional счёта
    BUSINESS_INDICATORS = [
        re.compile(r"amazon\s+business", re.IGNORECASE),
        re.compile(r"Geschäftsadresse"),
        re.compile(r"Auftraggeber"),
        re.compile(r"Rechnung\s+an"),
        re.compile(r"Firma"),
        re.compile(r"USt-IdNr"),
        re.compile(r"Steuernummer"),
        re.compile(r"\bGmbH\b", re.IGNORECASE),
        re.compile(r"\bAG\b"),
        re.compile(r"\bUG\b", re.IGNORECASE),
        re.compile(r"\be\.V\.", re.IGNORECASE),
        re.compile(r"\bKGaA\b", re.IGNORECASE),
        re.compile(r"Dirección comercial"),
        re.compile(r"NIF sujeto de IVA"),
        re.compile(r"Adresse (?:professionnelle|commerciale)"),
        re.compile(r"Numéro de TVA"),
        re.compile(r"TVA\s+[A-Z]{2}\d"),
        re.compile(r"Facture\s+à"),
        re.compile(r"Entreprise"),
        re.compile(r"Société"),
        re.compile(r"S\.A\.R\.L"),
        re.compile(r"S\.A\.S"),
        re.compile(r"IVA\s+ES"),
        re.compile(r"TVA\s+FR"),
        re.compile(r"IVA\s+IT"),
        re.compile(r"Partita IVA"),
        re.compile(r"P\.?I\.?\s+\d"),
        re.compile(r"società", re.IGNORECASE),
        re.compile(r"azienda", re.IGNORECASE),
    ]

    CONSUMER_INDICATORS = [
        re.compile(r"amazon\.de\b", re.IGNORECASE),
        re.compile(r"amazon\.fr\b", re.IGNORECASE),
        re.compile(r"amazon\.co\.uk\b", re.IGNORECASE),
        re.compile(r"Rechnungsadresse(?!.*Geschäftsadresse)"),
        re.compile(r"Steuerfreie Ausfuhrlieferung"),
        re.compile(r"Privatkunde"),
        re.compile(r"Endverbraucher"),
        re.compile(r"Lieferanschrift"),
        re.compile(r"Zahlungsmethode"),
    ]

    # Польская форма юрлица считается, только если это не реквизиты самого Amazon
    POLISH_BUSINESS_INDICATORS = [
        re.compile(r"SP\.\s*Z\s*O\.O\."),
        re.compile(r"ODDZIAŁ\s+W\s+POLSCE"),
    ]
    _AMAZON_POLISH_REGISTRATION = re.compile(
        r"Amazon EU S\.à r\.l\.,.*SP\. Z O\.O\. ODDZIAŁ W POLSCE", re.IGNORECASE
    )

    _GERMAN_BUSINESS_TERMS = re.compile(
        r"Geschäftsadresse|USt-IdNr|Steuernummer|Rechnung\s+an|Firma", re.IGNORECASE
    )
    _GERMAN_CONSUMER_TERMS = re.compile(r"Privatkunde|Endverbraucher", re.IGNORECASE)
    _TABLE_CELL = re.compile(r"\|\s*\d+\s*\|")
    _BUSINESS_ADDRESS_BLOCK = re.compile(r"Rechnung\s+an[\s\S]*?\n.*?\n.*?\n", re.IGNORECASE)

    def classify(self, text: str) -> FormatTag:
        """
        Определяет раскладку счёта.

        Args:
            text: Текст после Stage 1

        Returns:
            FormatTag (UNKNOWN для пустого/не-str текста или без сигналов)
        """
        return self.classify_detailed(text).tag

    def classify_detailed(self, text: str) -> FormatClassification:
        """Полный результат: scores, confidence, quality, subtype."""
        if not isinstance(text, str) or not text.strip():
            return FormatClassification(
                tag=FormatTag.UNKNOWN,
                scores={FormatTag.DOMESTIC.value: 0, FormatTag.REGIONAL.value: 0},
            )

        lowered = text.lower()
        domestic_score, domestic_matched = self._score(lowered, self.DOMESTIC_SIGNALS)
        regional_score, regional_matched = self._score(lowered, self.REGIONAL_SIGNALS)
        scores = {
            FormatTag.DOMESTIC.value: domestic_score,
            FormatTag.REGIONAL.value: regional_score,
        }

        tag = self._determine_tag(domestic_score, regional_score)
        confidence = self._calculate_confidence(tag, domestic_score, regional_score)
        level, action = self._determine_quality(confidence, domestic_score, regional_score)

        subtype = None
        matched: List[str] = []
        if tag == FormatTag.DOMESTIC:
            matched = domestic_matched
        elif tag == FormatTag.REGIONAL:
            matched = regional_matched
            subtype = self._detect_regional_subtype(text)

        logger.debug(
            f"[FormatClassifier] {tag.value} (domestic={domestic_score}, "
            f"regional={regional_score}, confidence={confidence}%, quality={level})"
        )

        return FormatClassification(
            tag=tag,
            confidence=confidence,
            quality_level=level,
            quality_action=action,
            scores=scores,
            subtype=subtype,
            matched_signals=matched,
        )

    def _score(self, lowered: str, signals: List[Tuple[str, int]]) -> Tuple[int, List[str]]:
        score = 0
        matched = []
        for marker, weight in signals:
            if marker.lower() in lowered:
                score += weight
                matched.append(marker)
        return score, matched

    def _determine_tag(self, domestic_score: int, regional_score: int) -> FormatTag:
        if domestic_score < FORMAT_MIN_SCORE and regional_score < FORMAT_MIN_SCORE:
            return FormatTag.UNKNOWN
        if domestic_score >= regional_score:
            return FormatTag.DOMESTIC
        return FormatTag.REGIONAL

    def _calculate_confidence(self, tag: FormatTag, domestic_score: int, regional_score: int) -> int:
        """Процент уверенности, сниженный при неоднозначности (оба формата >= 25)."""
        if tag == FormatTag.UNKNOWN:
            return 0

        if tag == FormatTag.DOMESTIC:
            winner, loser = domestic_score, regional_score
        else:
            winner, loser = regional_score, domestic_score

        ambiguous = winner >= FORMAT_MIN_SCORE and loser >= FORMAT_MIN_SCORE

        if winner >= 100:
            return 100
        if winner >= 80:
            return 60 if ambiguous else 80
        if winner >= 60:
            return 55 if ambiguous else 60
        if winner >= 40:
            return 40
        if winner >= FORMAT_MIN_SCORE:
            return 25
        return 15

    def _determine_quality(self, confidence: int, domestic_score: int, regional_score: int) -> Tuple[str, str]:
        if confidence < 25 or (domestic_score < FORMAT_MIN_SCORE and regional_score < FORMAT_MIN_SCORE):
            return "VERY LOW", "reject"
        if confidence < 40:
            return "LOW", "review"
        if confidence < 70:
            return "MEDIUM", "review"
        return "HIGH", "accept"

    def _detect_regional_subtype(self, text: str) -> str:
        """business / consumer для regional счёта (по умолчанию consumer)."""
        business_score = sum(1 for p in self.BUSINESS_INDICATORS if p.search(text))
        consumer_score = sum(1 for p in self.CONSUMER_INDICATORS if p.search(text))

        if not self._AMAZON_POLISH_REGISTRATION.search(text):
            if any(p.search(text) for p in self.POLISH_BUSINESS_INDICATORS):
                business_score += 1

        if self._GERMAN_BUSINESS_TERMS.search(text):
            business_score += 2
        if self._GERMAN_CONSUMER_TERMS.search(text):
            consumer_score += 2

        if business_score > consumer_score:
            return "business"
        if consumer_score > business_score:
            return "consumer"

        # Равенство: табличная раскладка до ASIN или блок "Rechnung an"
        if self._has_table_before_asin(text):
            return "business"
        if self._BUSINESS_ADDRESS_BLOCK.search(text):
            return "business"

        return "consumer"

    def _has_table_before_asin(self, text: str) -> bool:
        """Ячейка "| N |" где-то до последнего "ASIN:"."""
        cell = self._TABLE_CELL.search(text)
        return cell is not None and "ASIN:" in text[cell.end():]


_default_classifier = FormatClassifier()


def classify(text: str) -> FormatTag:
    """Stage 2 как функция: classify(text) -> FormatTag."""
    return _default_classifier.classify(text)
