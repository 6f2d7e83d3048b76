"""
Services package for the SSL checker.
"""

from .config_service import ConfigService
from .http_service import HttpService
from .logging_service import LoggingService

__all__ = [
    'ConfigService',
    'HttpService',
    'LoggingService'
]
