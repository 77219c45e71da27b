"""
Stage 1: Light Normalization

ЦКП: Текст, пригодный для определения формата.
"""

from .stage import LightNormalizer, LightNormalizationResult, normalize_light

__all__ = [
    "LightNormalizer",
    "LightNormalizationResult",
    "normalize_light",
]
