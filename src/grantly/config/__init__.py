"""
Configuration module for engine limits and caller-facing defaults.
"""

from .grantly_config import DenialBehavior, GrantlyConfig
from .timing_config import (
    DEFAULT_TIMING,
    TimingConfig,
    create_custom_timing,
    get_timing_config,
)

__all__ = [
    "DenialBehavior",
    "GrantlyConfig",
    "TimingConfig",
    "DEFAULT_TIMING",
    "create_custom_timing",
    "get_timing_config",
]
