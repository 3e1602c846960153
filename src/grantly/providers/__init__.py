"""
UI collaborators: dialog, rationale and toast providers.
"""

from dataclasses import dataclass
from typing import Any

from .protocol import DialogProvider, RationaleProvider, ToastProvider
from .static import SilentToastProvider, StaticDialogProvider, StaticRationaleProvider


@dataclass
class UIProviders:
    """The three providers the orchestrator talks to."""

    dialog: Any
    rationale: Any
    toast: Any

    @classmethod
    def console(cls) -> "UIProviders":
        from .console import (
            ConsoleDialogProvider,
            ConsoleRationaleProvider,
            ConsoleToastProvider,
        )

        return cls(
            dialog=ConsoleDialogProvider(),
            rationale=ConsoleRationaleProvider(),
            toast=ConsoleToastProvider(),
        )

    @classmethod
    def headless(cls, dialog_answer: bool = False, rationale_answer: bool = True) -> "UIProviders":
        return cls(
            dialog=StaticDialogProvider(dialog_answer),
            rationale=StaticRationaleProvider(rationale_answer),
            toast=SilentToastProvider(),
        )


__all__ = [
    "DialogProvider",
    "RationaleProvider",
    "ToastProvider",
    "SilentToastProvider",
    "StaticDialogProvider",
    "StaticRationaleProvider",
    "UIProviders",
]
