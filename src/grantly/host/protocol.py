"""
Protocol definitions for the host permission subsystem.

The engine never enforces grants itself; everything it knows about the
platform comes through these interfaces.
"""

from enum import IntEnum
from typing import Any, Iterable, Protocol, Sequence

from ..schemas.capability import NavigationTarget


class PlatformVersion(IntEnum):
    """Platform version levels at which capability semantics change."""

    LEGACY = 22
    RUNTIME_PROMPTS = 23
    UNKNOWN_SOURCES = 26
    BACKGROUND_LOCATION = 29
    ALL_FILES_ACCESS = 30
    NOTIFICATIONS = 33


class HostPermissionSubsystem(Protocol):
    """
    Interface every host backend must implement.
    """

    def app_identity(self) -> str:
        """Identity of the application the engine runs inside."""
        ...

    def platform_version(self) -> int:
        """Numeric platform version, comparable against PlatformVersion."""
        ...

    def query_grant_state(self, capability: str) -> bool:
        """
        Report whether the capability is currently granted.

        For special capabilities this answers the dedicated host probe
        (overlay drawing, settings writing, package installs, all-files access).
        """
        ...

    def should_show_rationale(self, capability: str, surface: Any = None) -> bool:
        """Report whether an explanatory prompt should precede a retry."""
        ...

    def issue_prompt(self, capabilities: Sequence[str], surface: Any = None) -> None:
        """
        Put a runtime grant prompt in front of the user.

        Returns immediately; the answer arrives later through
        ``RequestOrchestrator.deliver``.
        """
        ...

    def navigate_to_scoped_settings(
        self, capability: str, target: NavigationTarget, surface: Any = None
    ) -> None:
        """Open the settings surface described by ``target``."""
        ...


class DeclarationSource(Protocol):
    """Static, read-only list of capabilities an application declared."""

    def declared_capabilities(self, app_identity: str) -> Iterable[str]:
        """Return the declared capability identifiers for an application."""
        ...
