"""
Pydantic and dataclass schemas shared across the engine.
"""

from .capability import (
    CapabilityResult,
    CapabilityState,
    NavigationTarget,
    RoutingKind,
    RoutingOutcome,
)
from .request import RequestDescriptor, RequestPhase
from .result import Err, Ok, Result

__all__ = [
    "CapabilityResult",
    "CapabilityState",
    "NavigationTarget",
    "RoutingKind",
    "RoutingOutcome",
    "RequestDescriptor",
    "RequestPhase",
    "Ok",
    "Err",
    "Result",
]
