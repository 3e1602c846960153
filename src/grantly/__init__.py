"""
Grantly: capability request orchestration.

Decides, for a set of requested capabilities, whether to skip, prompt,
route to a scoped settings screen or reject, and delivers one aggregated
result list per request.
"""

from .callbacks import GrantlyCallback
from .config import DenialBehavior, GrantlyConfig, TimingConfig, create_custom_timing
from .context import GrantlyContext
from .core import (
    DeferredRequest,
    DegradationOutcome,
    ManifestDeclarationSource,
    PermissionRequest,
    StaticDeclarationSource,
)
from .exceptions import (
    ConcurrentRequestError,
    GrantlyError,
    InvalidConfigurationError,
    NotDeclaredError,
    NotInitializedError,
    RequestRejectedError,
    TransientHostError,
)
from .host import PlatformVersion, SimulatedHost
from .providers import UIProviders
from .schemas import (
    CapabilityResult,
    CapabilityState,
    Err,
    NavigationTarget,
    Ok,
    RequestDescriptor,
)

__version__ = "0.1.0"

__all__ = [
    "CapabilityResult",
    "CapabilityState",
    "ConcurrentRequestError",
    "DeferredRequest",
    "DegradationOutcome",
    "DenialBehavior",
    "Err",
    "GrantlyCallback",
    "GrantlyConfig",
    "GrantlyContext",
    "GrantlyError",
    "InvalidConfigurationError",
    "ManifestDeclarationSource",
    "NavigationTarget",
    "NotDeclaredError",
    "NotInitializedError",
    "Ok",
    "PermissionRequest",
    "PlatformVersion",
    "RequestDescriptor",
    "RequestRejectedError",
    "SimulatedHost",
    "StaticDeclarationSource",
    "TimingConfig",
    "TransientHostError",
    "UIProviders",
    "create_custom_timing",
]
