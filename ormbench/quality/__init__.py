"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, create_validator_for

__all__ = [
    "DataValidator",
    "ValidationResult",
    "create_validator_for",
]
