"""
Stage 5: Extractor Registry
"""

from .stage import ExtractorRegistry

__all__ = ["ExtractorRegistry"]
