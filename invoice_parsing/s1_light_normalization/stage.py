"""
Stage 1: Light Normalization

ЦКП: Текст, пригодный для определения формата.

Input: сырой текст счёта (str)
Output: текст с исправленным mojibake в ключевых словах и символах валют
        и нормализованными пробелами

Структура документа (переносы строк, колонтитулы) НЕ трогается:
это задача Stage 3 после определения формата.
Идемпотентно: повторный вызов ничего не меняет.
"""

import re
from dataclasses import dataclass
from typing import List, Tuple

from loguru import logger


# Порядок важен: длинные ключи раньше своих префиксов ("Ã§" раньше "Ã")
CRITICAL_ENCODING_FIXES: List[Tuple[str, str]] = [
    ("â‚¬", "€"),
    ("Â£", "£"),
    ("Ã¶", "ö"),
    ("Ã¼", "ü"),
    ("Ã¤", "ä"),
    ("ÃŸ", "ß"),
    ("Ã±", "ñ"),
    ("Ã³", "ó"),
    ("Ã\u00ad", "í"),
    ("Ã©", "é"),
    ("Ã§", "ç"),
    ("Ã\u00a0", "à"),
    ("Ã", "à"),
]

_MULTI_SPACE_RE = re.compile(r" {2,}")
_EXCESS_NEWLINES_RE = re.compile(r"\n{4,}")


@dataclass
class LightNormalizationResult:
    """
    Результат Stage 1: Light Normalization.

    ЦКП: Текст для Format Classifier.
    """
    text: str
    original_length: int = 0
    encoding_fixes: int = 0

    def to_dict(self) -> dict:
        return {
            "text_length": len(self.text),
            "original_length": self.original_length,
            "encoding_fixes": self.encoding_fixes,
        }


class LightNormalizer:
    """
    Stage 1: Light Normalization.

    ЦКП: Исправление только того, что ломает определение формата.
    """

    def process(self, raw_text: str) -> LightNormalizationResult:
        """
        Нормализует сырой текст.

        Args:
            raw_text: Текст из экстрактора документа

        Returns:
            LightNormalizationResult (пустой текст для пустого/не-str входа)
        """
        if not isinstance(raw_text, str) or not raw_text:
            return LightNormalizationResult(text="")

        text, fixes = self._fix_critical_encoding(raw_text)
        text = self._normalize_whitespace(text)

        if fixes:
            logger.debug(f"[LightNormalizer] Исправлено mojibake-последовательностей: {fixes}")

        return LightNormalizationResult(
            text=text,
            original_length=len(raw_text),
            encoding_fixes=fixes,
        )

    def normalize(self, raw_text: str) -> str:
        return self.process(raw_text).text

    def _fix_critical_encoding(self, text: str) -> Tuple[str, int]:
        # Повтор до неподвижной точки: "ÂÂ£" после первого прохода снова "Â£"
        fixes = 0
        while True:
            pass_fixes = 0
            for broken, correct in CRITICAL_ENCODING_FIXES:
                count = text.count(broken)
                if count:
                    text = text.replace(broken, correct)
                    pass_fixes += count
            if not pass_fixes:
                return text, fixes
            fixes += pass_fixes

    def _normalize_whitespace(self, text: str) -> str:
        text = text.replace("\t", " ")
        text = _MULTI_SPACE_RE.sub(" ", text)
        return _EXCESS_NEWLINES_RE.sub("\n\n\n", text)


_default_normalizer = LightNormalizer()


def normalize_light(raw_text: str) -> str:
    """Stage 1 как функция: normalize_light(raw_text) -> str."""
    return _default_normalizer.normalize(raw_text)
