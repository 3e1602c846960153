"""
Host permission subsystem interfaces and the in-memory backend.
"""

from .protocol import DeclarationSource, HostPermissionSubsystem, PlatformVersion
from .simulated import SimulatedHost

__all__ = [
    "DeclarationSource",
    "HostPermissionSubsystem",
    "PlatformVersion",
    "SimulatedHost",
]
