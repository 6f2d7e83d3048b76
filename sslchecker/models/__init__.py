"""
Models package for the SSL checker.
"""

from .config import Config, ConfigValidationError, ConfigValidationResult

__all__ = [
    'Config',
    'ConfigValidationError',
    'ConfigValidationResult'
]
