"""
Protocol definitions for UI collaborators.

The engine calls these synchronously; implementations may run their own UI
flow as long as they return the user's answer.
"""

from typing import Protocol, Sequence

from ..schemas.capability import CapabilityResult


class DialogProvider(Protocol):
    """Shows a dialog about refused capabilities and returns the user's choice."""

    def show(self, capabilities: Sequence[str], title: str, message: str) -> bool:
        """Return True if the user chose the affirmative action."""
        ...


class RationaleProvider(Protocol):
    """Explains why capabilities are needed before the host prompt."""

    def show(self, capabilities: Sequence[str], title: str, message: str) -> bool:
        """Return True if the user agreed to continue to the prompt."""
        ...


class ToastProvider(Protocol):
    """Shows a short, non-blocking notice after results are delivered."""

    def show(
        self,
        granted: Sequence[CapabilityResult],
        denied: Sequence[CapabilityResult],
        permanently_denied: Sequence[CapabilityResult],
    ) -> None:
        ...
