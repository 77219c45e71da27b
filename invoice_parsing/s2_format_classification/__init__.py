"""
Stage 2: Format Classification
"""

from .stage import FormatClassifier, FormatClassification, FormatTag, classify

__all__ = ["FormatClassifier", "FormatClassification", "FormatTag", "classify"]
