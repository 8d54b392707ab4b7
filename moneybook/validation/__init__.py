"""
Validation Package

Advisory checks a form runs before calling the data-sync layer.
"""

from moneybook.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
