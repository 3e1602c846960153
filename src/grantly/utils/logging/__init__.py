"""
Logging utilities.
"""

from .logging_config import CapabilityRedactionFilter, setup_logging

__all__ = ["CapabilityRedactionFilter", "setup_logging"]
