"""
Stage 3: Format-Specific Normalization

ЦКП: Чистый текст для определения языка и извлечения полей.

Input: текст после Stage 1 + FormatTag из Stage 2
Output: текст без колонтитулов, юридического шума и артефактов форм

Шаги:
1. Полная таблица mojibake (Stage 1 исправил только критичное)
2. Очистка по формату (domestic / regional / generic)
3. Финальная нормализация пробелов и пустых строк
"""

import re
from dataclasses import dataclass, field
from typing import List, Pattern, Tuple

from loguru import logger

from ..s2_format_classification import FormatTag


# Порядок важен: длинные ключи раньше своих префиксов, "Ã" последним
FULL_ENCODING_FIXES: List[Tuple[str, str]] = [
    ("Ã©", "é"), ("Ã¨", "è"), ("Ãª", "ê"), ("Ã«", "ë"),
    ("Ã¡", "á"), ("Ã¢", "â"), ("Ã¤", "ä"), ("Ã£", "ã"), ("Ã¥", "å"),
    ("Ã§", "ç"),
    ("Ã\u00ad", "í"), ("Ã®", "î"), ("Ã¯", "ï"),
    ("Ã³", "ó"), ("Ã´", "ô"), ("Ã¶", "ö"), ("Ãµ", "õ"),
    ("Ãº", "ú"), ("Ã»", "û"), ("Ã¼", "ü"),
    ("Ã±", "ñ"),
    ("Ã‰", "É"), ("Ã„", "Ä"), ("Ã–", "Ö"), ("Ãœ", "Ü"), ("ÃŸ", "ß"),
    ("Å¥", "ť"), ("Åˆ", "ň"), ("Å™", "ř"), ("Å¡", "š"), ("Å¾", "ž"),
    ("â‚¬", "€"),
    ("Â£", "£"), ("Â¥", "¥"), ("Â°", "°"),
    ("â€™", "’"), ("â€˜", "‘"), ("â€œ", "“"), ("â€\u009d", "”"),
    ("â€“", "–"), ("â€”", "—"), ("â€¢", "•"), ("â€¦", "…"),
    ("â€š", "‚"), ("â€ž", "„"), ("â€°", "‰"), ("â€¹", "‹"), ("â€º", "›"),
    ("â„¢", "™"),
    ("Ã\u00a0", "à"),
    ("Ã", "à"),
]

_FORM_FIELDS: List[Pattern] = [
    re.compile(r"\[\s*\]"),
    re.compile(r"\[\s*X\s*\]", re.IGNORECASE),
]

_DOMESTIC_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"Page\s+\d+\s+of\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"Conditions of Use \| Privacy Notice.*$", re.MULTILINE), ""),
    (re.compile(r"\(seller profile\)", re.IGNORECASE), ""),
    # Линии-разделители убираются до склейки переносов
    (re.compile(r"-{5,}"), ""),
    # Одиночный дефис в конце строки: перенос внутри слова
    (re.compile(r"-[ \t]*\n[ \t]*"), ""),
]

_REGIONAL_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"Seite\s+\d+\s*von\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"Página\s+\d+\s+de\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"Page\s+\d+\s+sur\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"Pagina\s+\d+\s+di\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"Amazon EU S\.à r\.l\. - 38 avenue.*?(?=\n\n|\n[A-Z]|$)", re.DOTALL), ""),
    (re.compile(r"Sitz der Gesellschaft:.*?Stammkapital:.*?EUR", re.DOTALL), ""),
    (re.compile(r"eingetragen im Luxemburgischen[^\n]*"), ""),
    # word-\nword склеивается даже без пробела после дефиса
    (re.compile(r"(?<=\w)-[ \t]*\n[ \t]*(?=\w)"), ""),
    (re.compile(r"\(\d+\)\s*Steuerfreie innergemeinschaftliche[^\n]*"), ""),
    # 37,37€ -> 37,37 €
    (re.compile(r"(?<=\d,\d\d)€"), " €"),
    (re.compile(r"\[\s*_{3,}\s*\]"), ""),
]

_GENERIC_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"Page\s+\d+\s+(?:of|von|de|sur|di)\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"-[ \t]*\n[ \t]*"), ""),
]

_CONTROL_WHITESPACE_RE = re.compile(r"[\t\f\v\r]+")
_MULTI_SPACE_RE = re.compile(r" {2,}")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass
class FormatNormalizationResult:
    """
    Результат Stage 3: Format-Specific Normalization.

    ЦКП: Текст для Language Detector и Locale Extractor.
    """
    text: str
    format_tag: FormatTag = FormatTag.UNKNOWN
    encoding_fixes: int = 0
    removed_chars: int = 0
    applied_rules: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "format": self.format_tag.value,
            "text_length": len(self.text),
            "encoding_fixes": self.encoding_fixes,
            "removed_chars": self.removed_chars,
            "applied_rules": list(self.applied_rules),
        }


class FormatNormalizer:
    """
    Stage 3: Format-Specific Normalization.

    ЦКП: Агрессивная очистка, выбранная по тегу формата.
    """

    def process(self, text: str, tag: FormatTag) -> FormatNormalizationResult:
        """
        Нормализует текст по правилам формата.

        Args:
            text: Текст после Stage 1
            tag: FormatTag из Stage 2 (неизвестный тег = generic правила)

        Returns:
            FormatNormalizationResult (пустой текст для пустого/не-str входа)
        """
        if not isinstance(text, str) or not text:
            return FormatNormalizationResult(text="", format_tag=FormatTag.UNKNOWN)

        tag = self._coerce_tag(tag)
        cleaned, fixes = self._fix_all_encoding(text)

        if tag == FormatTag.DOMESTIC:
            rules = _DOMESTIC_RULES
        elif tag == FormatTag.REGIONAL:
            rules = _REGIONAL_RULES
        else:
            rules = _GENERIC_RULES

        applied = []
        for pattern, replacement in rules + [(p, "") for p in _FORM_FIELDS]:
            cleaned, count = pattern.subn(replacement, cleaned)
            if count:
                applied.append(pattern.pattern)

        cleaned = self._final_cleanup(cleaned)

        logger.debug(
            f"[FormatNormalizer] {tag.value}: {len(text)} -> {len(cleaned)} символов, "
            f"правил применено: {len(applied)}"
        )

        return FormatNormalizationResult(
            text=cleaned,
            format_tag=tag,
            encoding_fixes=fixes,
            removed_chars=max(len(text) - len(cleaned), 0),
            applied_rules=applied,
        )

    def normalize(self, text: str, tag: FormatTag) -> str:
        return self.process(text, tag).text

    def _coerce_tag(self, tag) -> FormatTag:
        if isinstance(tag, FormatTag):
            return tag
        try:
            return FormatTag(tag)
        except ValueError:
            logger.trace(f"[FormatNormalizer] Неизвестный тег '{tag}', generic правила")
            return FormatTag.UNKNOWN

    def _fix_all_encoding(self, text: str) -> Tuple[str, int]:
        fixes = 0
        for broken, correct in FULL_ENCODING_FIXES:
            count = text.count(broken)
            if count:
                text = text.replace(broken, correct)
                fixes += count
        return text, fixes

    def _final_cleanup(self, text: str) -> str:
        text = _CONTROL_WHITESPACE_RE.sub(" ", text)
        text = _MULTI_SPACE_RE.sub(" ", text)
        text = "\n".join(line.strip() for line in text.split("\n"))
        text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
        return text.strip()


_default_normalizer = FormatNormalizer()


def normalize_for_format(text: str, tag: FormatTag) -> str:
    """Stage 3 как функция: normalize_for_format(text, tag) -> str."""
    return _default_normalizer.normalize(text, tag)
