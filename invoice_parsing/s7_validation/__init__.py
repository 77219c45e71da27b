"""
Stage 7: Validation
"""

from .stage import InvoiceValidator, classify_discrepancy, score_issues, validate

__all__ = ["InvoiceValidator", "classify_discrepancy", "score_issues", "validate"]
