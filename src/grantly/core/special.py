"""
Special-capability routing.

Maps capabilities that cannot go through the standard runtime prompt to the
out-of-band flow that grants them. Every settings navigation is scoped to the
requesting application's own identity.
"""

import logging
from typing import Any, Optional

from ..exceptions import GrantlyError, InvalidConfigurationError, TransientHostError
from ..host.protocol import HostPermissionSubsystem
from ..schemas.capability import NavigationTarget, RoutingKind, RoutingOutcome
from .capabilities import (
    ACTION_APP_DETAILS,
    BACKGROUND_LOCATION,
    FOREGROUND_LOCATION,
    is_special,
    special_spec,
)
from .checker import CapabilityStateChecker
from .declarations import DeclarationValidator

logger = logging.getLogger(__name__)


class SpecialCapabilityRouter:
    """
    Decides and performs the out-of-band step for special capabilities.

    The router never issues grant prompts itself. When a standard prompt is
    needed it returns ISSUED_STANDARD_PROMPT with the capabilities the
    orchestrator should prompt for.
    """

    def __init__(
        self,
        host: HostPermissionSubsystem,
        checker: CapabilityStateChecker,
        declarations: DeclarationValidator,
        app_identity: str,
    ):
        self._host = host
        self._checker = checker
        self._declarations = declarations
        self._app_identity = app_identity

    def is_special(self, capability: str) -> bool:
        return is_special(capability, self._checker.platform_version())

    def navigation_target(self, capability: str) -> Optional[NavigationTarget]:
        """Scoped settings target for a capability, or None if it has none."""
        spec = special_spec(capability)
        if spec is None or spec.settings_action is None:
            return None
        if self._checker.platform_version() < spec.flow_from:
            return None
        return NavigationTarget.for_app(spec.settings_action, self._app_identity)

    def route(self, capability: str, surface: Any = None) -> RoutingOutcome:
        """
        Route one capability to the flow that can grant it.

        Args:
            capability: Capability identifier
            surface: Owning surface of the request

        Returns:
            RoutingOutcome describing what happened or what must be prompted
        """
        spec = special_spec(capability)
        version = self._checker.platform_version()

        if spec is None or not self.is_special(capability):
            if spec is not None and version < spec.flow_from:
                return self._route_legacy(capability)
            if self._checker.probe_special(capability):
                return self._already_granted(capability)
            return self._standard_prompt(capability, (capability,))

        if version < spec.flow_from:
            return self._route_legacy(capability)

        if self._checker.probe_special(capability):
            return self._already_granted(capability)

        if spec.settings_action is not None:
            target = NavigationTarget.for_app(spec.settings_action, self._app_identity)
            self._navigate(capability, target, surface)
            return RoutingOutcome(
                capability=capability,
                kind=RoutingKind.NAVIGATED_TO_SETTINGS,
                navigation=target,
            )

        if capability == BACKGROUND_LOCATION:
            return self._route_background_location(surface)

        return self._standard_prompt(capability, (capability,))

    def open_app_settings(self, capability: str, surface: Any = None) -> NavigationTarget:
        """Open the application's own details screen for a refused capability."""
        target = NavigationTarget.for_app(ACTION_APP_DETAILS, self._app_identity)
        self._navigate(capability, target, surface)
        return target

    def _route_background_location(self, surface: Any) -> RoutingOutcome:
        if any(self._granted(c) for c in FOREGROUND_LOCATION):
            logger.debug("Foreground location held, prompting for background location")
            return self._standard_prompt(BACKGROUND_LOCATION, (BACKGROUND_LOCATION,))

        prerequisite = self._foreground_prerequisite()
        logger.debug(
            "Background location requires %s first for %s",
            prerequisite,
            self._app_identity,
        )
        return self._standard_prompt(BACKGROUND_LOCATION, (prerequisite,))

    def _route_legacy(self, capability: str) -> RoutingOutcome:
        spec = special_spec(capability)
        if spec is None or spec.legacy == "install":
            return self._already_granted(capability)
        if spec.legacy == "fallback" and spec.legacy_capability:
            if self._granted(spec.legacy_capability):
                return self._already_granted(capability)
            return self._standard_prompt(capability, (spec.legacy_capability,))
        if spec.legacy == "foreground":
            if any(self._granted(c) for c in FOREGROUND_LOCATION):
                return self._already_granted(capability)
            return self._standard_prompt(capability, (self._foreground_prerequisite(),))
        return self._already_granted(capability)

    def _foreground_prerequisite(self) -> str:
        for candidate in FOREGROUND_LOCATION:
            if self._declarations.is_declared(candidate):
                return candidate
        return FOREGROUND_LOCATION[0]

    def _granted(self, capability: str) -> bool:
        try:
            return bool(self._host.query_grant_state(capability))
        except GrantlyError:
            raise
        except Exception as exc:
            raise TransientHostError(
                f"Grant state query failed for {capability}", cause=exc
            ) from exc

    def _navigate(self, capability: str, target: NavigationTarget, surface: Any) -> None:
        host_identity = self._host.app_identity()
        if target.app_identity != self._app_identity or host_identity != self._app_identity:
            raise InvalidConfigurationError(
                f"Navigation scope mismatch: target {target.scope}, "
                f"engine {self._app_identity}, host {host_identity}",
                "Initialise the engine with the host application's own identity",
                cosmetic=False,
            )
        logger.debug("Navigating to %s for %s (%s)", target.action, capability, target.scope)
        try:
            self._host.navigate_to_scoped_settings(capability, target, surface)
        except GrantlyError:
            raise
        except Exception as exc:
            logger.error("Failed to open %s for %s: %s", target.action, capability, exc)
            raise TransientHostError(
                f"Settings navigation failed for {capability}", cause=exc
            ) from exc

    @staticmethod
    def _already_granted(capability: str) -> RoutingOutcome:
        return RoutingOutcome(capability=capability, kind=RoutingKind.ALREADY_GRANTED)

    @staticmethod
    def _standard_prompt(capability: str, prompt: tuple) -> RoutingOutcome:
        return RoutingOutcome(
            capability=capability,
            kind=RoutingKind.ISSUED_STANDARD_PROMPT,
            prompt_capabilities=prompt,
        )
