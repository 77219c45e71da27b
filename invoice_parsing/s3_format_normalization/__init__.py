"""
Stage 3: Format-Specific Normalization
"""

from .stage import (
    FormatNormalizer,
    FormatNormalizationResult,
    FULL_ENCODING_FIXES,
    normalize_for_format,
)

__all__ = [
    "FormatNormalizer",
    "FormatNormalizationResult",
    "FULL_ENCODING_FIXES",
    "normalize_for_format",
]
