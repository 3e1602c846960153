"""
Default terminal providers built on rich and InquirerPy.
"""

import logging
from typing import Optional, Sequence

from InquirerPy import inquirer
from InquirerPy.base.control import Choice
from rich.console import Console

from ..core.capabilities import display_name
from ..schemas.capability import CapabilityResult
from ..utils.ui import THEME
from ..utils.ui import console as default_console
from ..utils.ui.style import get_inquirer_style

logger = logging.getLogger(__name__)


def _print_box(console: Console, title: str, message: str, capabilities: Sequence[str], color: str) -> None:
    c_border = THEME["border"]
    c_text = THEME["text"]
    c_muted = THEME["muted"]

    console.print()
    console.print(f"[{c_border}]╭{'─' * 50}╮[/]")
    console.print(f"[{c_border}]│[/] [{color}]{title}[/]")
    console.print(f"[{c_border}]├{'─' * 50}┤[/]")
    console.print(f"[{c_border}]│[/] [{c_text}]{message}[/]")
    for capability in capabilities:
        console.print(f"[{c_border}]│[/]   [{c_muted}]•[/] {display_name(capability)}")
    console.print(f"[{c_border}]╰{'─' * 50}╯[/]")
    console.print()


def _select(message: str, yes: str, no: str) -> bool:
    try:
        choice = inquirer.select(
            message=message,
            choices=[
                Choice(value=True, name=yes),
                Choice(value=False, name=no),
            ],
            default=True,
            pointer="›",
            style=get_inquirer_style(),
            qmark="",
            amark="✓",
        ).execute()
    except (EOFError, KeyboardInterrupt):
        return False
    return bool(choice)


class ConsoleRationaleProvider:
    """Explains the request in a bordered box and asks to continue."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def show(self, capabilities: Sequence[str], title: str, message: str) -> bool:
        _print_box(self.console, title, message, capabilities, THEME["warning"])
        return _select("", "Continue", "Not now")


class ConsoleDialogProvider:
    """Offers to open the application's settings after a permanent refusal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def show(self, capabilities: Sequence[str], title: str, message: str) -> bool:
        _print_box(self.console, title, message, capabilities, THEME["error"])
        return _select("", "Open settings", "Cancel")


class ConsoleToastProvider:
    """One-line summary of a delivered result list."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def show(
        self,
        granted: Sequence[CapabilityResult],
        denied: Sequence[CapabilityResult],
        permanently_denied: Sequence[CapabilityResult],
    ) -> None:
        parts = []
        if granted:
            parts.append(f"[{THEME['granted']}]✓ {len(granted)} granted[/]")
        if denied:
            parts.append(f"[{THEME['denied']}]✗ {len(denied)} denied[/]")
        if permanently_denied:
            parts.append(
                f"[{THEME['permanently_denied']}]⊘ {len(permanently_denied)} "
                "permanently denied[/]"
            )
        if parts:
            self.console.print("  ".join(parts))
