"""
Core orchestration components.
"""

from .checker import CapabilityStateChecker, RequestHistory
from .declarations import DeclarationValidator
from .isolation import GateDecision, GateRejection, GateStatus, IsolationGate
from .manifest import ManifestDeclarationSource, StaticDeclarationSource, load_manifest
from .orchestrator import ExpirySweeper, RequestOrchestrator
from .recovery import (
    DegradationOutcome,
    ErrorRecoveryManager,
    RecoveryAction,
    RecoveryDecision,
)
from .request_builder import DeferredRequest, PermissionRequest
from .special import SpecialCapabilityRouter

__all__ = [
    "CapabilityStateChecker",
    "DeclarationValidator",
    "DeferredRequest",
    "DegradationOutcome",
    "ErrorRecoveryManager",
    "ExpirySweeper",
    "GateDecision",
    "GateRejection",
    "GateStatus",
    "IsolationGate",
    "ManifestDeclarationSource",
    "PermissionRequest",
    "RecoveryAction",
    "RecoveryDecision",
    "RequestHistory",
    "RequestOrchestrator",
    "SpecialCapabilityRouter",
    "StaticDeclarationSource",
    "load_manifest",
]
