"""
Type-safe schemas for capability states, results, and routing outcomes.
"""

import time
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CapabilityState(str, Enum):
    """Grant state of a single capability as observed by the checker."""

    GRANTED = "granted"
    DENIED = "denied"
    PERMANENTLY_DENIED = "permanently_denied"
    NOT_DECLARED = "not_declared"
    REQUIRES_SPECIAL_HANDLING = "requires_special_handling"


class CapabilityResult(BaseModel):
    """
    Outcome for one capability within a completed request.
    """

    model_config = ConfigDict(frozen=True)

    capability: str = Field(description="Capability identifier")
    state: CapabilityState = Field(description="Resolved grant state")
    requires_rationale: bool = Field(
        default=False,
        description="Whether an explanatory prompt should precede a retry",
    )
    timestamp: float = Field(
        default_factory=time.time, description="Creation time (epoch seconds)"
    )

    @property
    def is_granted(self) -> bool:
        return self.state == CapabilityState.GRANTED

    @property
    def is_denied(self) -> bool:
        return self.state == CapabilityState.DENIED

    @property
    def is_permanently_denied(self) -> bool:
        return self.state == CapabilityState.PERMANENTLY_DENIED

    @property
    def requires_special_handling(self) -> bool:
        return self.state == CapabilityState.REQUIRES_SPECIAL_HANDLING

    @property
    def is_not_declared(self) -> bool:
        return self.state == CapabilityState.NOT_DECLARED


class NavigationTarget(BaseModel):
    """
    Settings surface to open for an out-of-band grant.

    The scope always names the requesting application; unscoped or wildcard
    targets are rejected at construction.
    """

    model_config = ConfigDict(frozen=True)

    action: str = Field(description="Settings surface identifier")
    scope: str = Field(description="Scope URI, always 'package:<app identity>'")

    @field_validator("scope")
    @classmethod
    def _scope_names_one_app(cls, value: str) -> str:
        prefix = "package:"
        if not value.startswith(prefix):
            raise ValueError(f"navigation scope must start with {prefix!r}: {value!r}")
        identity = value[len(prefix) :]
        if not identity.strip() or any(token in identity for token in ("*", "?", "/")):
            raise ValueError(f"navigation scope is not a single app identity: {value!r}")
        return value

    @classmethod
    def for_app(cls, action: str, app_identity: str) -> "NavigationTarget":
        """Build a target scoped to exactly one application identity."""
        return cls(action=action, scope=f"package:{app_identity}")

    @property
    def app_identity(self) -> str:
        return self.scope[len("package:") :]


class RoutingKind(str, Enum):
    """What the special-capability router did for a capability."""

    NAVIGATED_TO_SETTINGS = "navigated_to_settings"
    ISSUED_STANDARD_PROMPT = "issued_standard_prompt"
    ALREADY_GRANTED = "already_granted"


class RoutingOutcome(BaseModel):
    """
    Result of routing one special capability.

    For ISSUED_STANDARD_PROMPT, ``prompt_capabilities`` lists what the
    orchestrator must put in front of the host prompt; for a two-step
    sequence this is the prerequisite rather than the routed capability.
    """

    model_config = ConfigDict(frozen=True)

    capability: str = Field(description="Capability that was routed")
    kind: RoutingKind = Field(description="Routing decision")
    navigation: Optional[NavigationTarget] = Field(
        default=None, description="Scoped settings target when navigating"
    )
    prompt_capabilities: Tuple[str, ...] = Field(
        default=(), description="Capabilities to prompt for via the standard flow"
    )

    @property
    def deferred(self) -> bool:
        """True when the routed capability itself still awaits a follow-up."""
        return (
            self.kind == RoutingKind.ISSUED_STANDARD_PROMPT
            and self.capability not in self.prompt_capabilities
        )
