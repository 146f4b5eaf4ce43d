"""
Core PSF components
"""

from .exceptions import (
    PSFError, ConfigurationError, ValidationError, OracleError, TransportError, ParseError,
)
from .config import Config
from .system import PSFSystem

__all__ = [
    'PSFSystem',
    'Config',
    'PSFError',
    'ConfigurationError',
    'ValidationError',
    'OracleError',
    'TransportError',
    'ParseError'
]
