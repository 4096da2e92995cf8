"""
Utility functions for the statemap explorer.
Includes error handling, logging setup and time formatting.
"""

from .error_handler import (
    ConfigError, DatasetError, RenderError, StatemapError, guard_gesture, setup_logging,
)
from .time_format import time_to_text, time_units

__all__ = [
    'ConfigError',
    'DatasetError',
    'RenderError',
    'StatemapError',
    'guard_gesture',
    'setup_logging',
    'time_to_text',
    'time_units'
]
