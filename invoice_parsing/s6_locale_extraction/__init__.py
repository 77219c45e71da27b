"""
Stage 6: Locale Extraction
"""

from .locale_extractor import LocaleExtractor
from .generic_extractor import GenericExtractor

__all__ = ["LocaleExtractor", "GenericExtractor"]
