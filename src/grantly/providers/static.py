"""
Non-interactive providers with fixed answers.

Used for headless runs, the ``simulate`` command and tests.
"""

from typing import List, Sequence, Tuple

from ..schemas.capability import CapabilityResult


class StaticDialogProvider:
    """Always gives the same answer and records every call."""

    def __init__(self, answer: bool = False):
        self.answer = answer
        self.calls: List[Tuple[Tuple[str, ...], str, str]] = []

    def show(self, capabilities: Sequence[str], title: str, message: str) -> bool:
        self.calls.append((tuple(capabilities), title, message))
        return self.answer


class StaticRationaleProvider(StaticDialogProvider):
    def __init__(self, answer: bool = True):
        super().__init__(answer)


class SilentToastProvider:
    """Records toasts instead of showing them."""

    def __init__(self):
        self.calls: List[Tuple[int, int, int]] = []

    def show(
        self,
        granted: Sequence[CapabilityResult],
        denied: Sequence[CapabilityResult],
        permanently_denied: Sequence[CapabilityResult],
    ) -> None:
        self.calls.append((len(granted), len(denied), len(permanently_denied)))
