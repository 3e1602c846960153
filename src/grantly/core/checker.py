"""
Capability state checker.

Classifies the current grantedness of a capability, branching on platform
version and on whether the capability needs an out-of-band flow. Nothing
here is cached: every call re-derives the state from the host.
"""

import logging
import threading
from typing import Any, Iterable, List, Set

from ..exceptions import GrantlyError, TransientHostError
from ..host.protocol import HostPermissionSubsystem, PlatformVersion
from ..schemas.capability import CapabilityResult, CapabilityState
from .capabilities import FOREGROUND_LOCATION, is_special, special_spec
from .declarations import DeclarationValidator

logger = logging.getLogger(__name__)


class RequestHistory:
    """
    Tracks which capabilities have been put in front of the user.

    The host's "no rationale" signal means either "never asked" or "asked and
    refused for good"; this history is what tells the two apart.
    """

    def __init__(self) -> None:
        self._requested: Set[str] = set()
        self._lock = threading.Lock()

    def mark_requested(self, capabilities: Iterable[str]) -> None:
        with self._lock:
            self._requested.update(capabilities)

    def was_requested(self, capability: str) -> bool:
        with self._lock:
            return capability in self._requested

    def forget(self, capability: str) -> None:
        with self._lock:
            self._requested.discard(capability)

    def clear(self) -> None:
        with self._lock:
            self._requested.clear()


class CapabilityStateChecker:
    """Derives CapabilityResult values from host queries."""

    def __init__(
        self,
        host: HostPermissionSubsystem,
        declarations: DeclarationValidator,
        history: RequestHistory,
    ):
        self._host = host
        self._declarations = declarations
        self._history = history

    @property
    def history(self) -> RequestHistory:
        return self._history

    def platform_version(self) -> int:
        return int(self._host.platform_version())

    def supports_runtime_prompts(self) -> bool:
        return self.platform_version() >= PlatformVersion.RUNTIME_PROMPTS

    def check(self, capability: str, surface: Any = None) -> CapabilityResult:
        """
        Classify one capability.

        Args:
            capability: Capability identifier
            surface: Owning surface, forwarded to the rationale query

        Returns:
            CapabilityResult for the capability's current state

        Raises:
            TransientHostError: if a host query raised
        """
        if not self._declarations.is_declared(capability):
            return CapabilityResult(
                capability=capability, state=CapabilityState.NOT_DECLARED
            )

        version = self.platform_version()

        if is_special(capability, version):
            granted = self.probe_special(capability)
            state = (
                CapabilityState.GRANTED
                if granted
                else CapabilityState.REQUIRES_SPECIAL_HANDLING
            )
            return CapabilityResult(capability=capability, state=state)

        if self._query(capability):
            return CapabilityResult(capability=capability, state=CapabilityState.GRANTED)

        if version < PlatformVersion.RUNTIME_PROMPTS:
            # install-time grant is authoritative
            return CapabilityResult(capability=capability, state=CapabilityState.DENIED)

        rationale = self.requires_rationale(capability, surface)
        if not rationale and self._history.was_requested(capability):
            return CapabilityResult(
                capability=capability, state=CapabilityState.PERMANENTLY_DENIED
            )
        return CapabilityResult(
            capability=capability,
            state=CapabilityState.DENIED,
            requires_rationale=rationale,
        )

    def check_all(self, capabilities: Iterable[str], surface: Any = None) -> List[CapabilityResult]:
        return [self.check(capability, surface) for capability in capabilities]

    def has_any(self, capabilities: Iterable[str]) -> bool:
        return any(result.is_granted for result in self.check_all(capabilities))

    def has_all(self, capabilities: Iterable[str]) -> bool:
        return all(result.is_granted for result in self.check_all(capabilities))

    def denied_capabilities(self, capabilities: Iterable[str]) -> List[str]:
        return [
            r.capability
            for r in self.check_all(capabilities)
            if r.is_denied or r.is_permanently_denied
        ]

    def granted_capabilities(self, capabilities: Iterable[str]) -> List[str]:
        return [r.capability for r in self.check_all(capabilities) if r.is_granted]

    def requires_rationale(self, capability: str, surface: Any = None) -> bool:
        """
        Ask the host whether an explanatory prompt should precede a retry.

        Always False for special capabilities and on platforms without
        runtime prompting.
        """
        version = self.platform_version()
        if version < PlatformVersion.RUNTIME_PROMPTS or is_special(capability, version):
            return False
        try:
            return bool(self._host.should_show_rationale(capability, surface))
        except GrantlyError:
            raise
        except Exception as exc:
            raise TransientHostError(
                f"Rationale query failed for {capability}", cause=exc
            ) from exc

    def is_permanently_denied(self, capability: str, surface: Any = None) -> bool:
        """
        True when the capability is denied, the host would not show rationale,
        and the capability has been requested before.

        Without the request history a first-ever ask looks identical to a
        permanent refusal, so an unrequested capability is never reported as
        permanently denied.
        """
        if not self.supports_runtime_prompts():
            return False
        if self._query(capability):
            return False
        if self.requires_rationale(capability, surface):
            return False
        return self._history.was_requested(capability)

    def probe_special(self, capability: str) -> bool:
        """
        Version-aware grant probe for special capabilities.

        Below a capability's flow version the legacy rule applies: install-time
        grant when declared, a standard fallback capability, or any foreground
        location grant.
        """
        spec = special_spec(capability)
        if spec is None:
            return self._query(capability)

        if self.platform_version() >= spec.flow_from:
            return self._query(capability)

        if spec.legacy == "install":
            return self._declarations.is_declared(capability)
        if spec.legacy == "fallback" and spec.legacy_capability:
            return self._query(spec.legacy_capability)
        if spec.legacy == "foreground":
            return any(self._query(c) for c in FOREGROUND_LOCATION)
        return self._query(capability)

    def _query(self, capability: str) -> bool:
        try:
            return bool(self._host.query_grant_state(capability))
        except GrantlyError:
            raise
        except Exception as exc:
            logger.warning("Grant state query failed for %s: %s", capability, exc)
            raise TransientHostError(
                f"Grant state query failed for {capability}", cause=exc
            ) from exc
