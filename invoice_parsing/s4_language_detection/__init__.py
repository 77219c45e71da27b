"""
Stage 4: Language Detection
"""

from .stage import LanguageDetector, DetectionScore

__all__ = ["LanguageDetector", "DetectionScore"]
