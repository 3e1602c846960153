"""
Terminal UI helpers: shared console, theme and prompt style.
"""

from rich.console import Console

from .theme import ICONS, THEME

console = Console()

STATE_STYLES = {
    "granted": ("granted", THEME["granted"]),
    "denied": ("denied", THEME["denied"]),
    "permanently_denied": ("permanently_denied", THEME["permanently_denied"]),
    "not_declared": ("not_declared", THEME["not_declared"]),
    "requires_special_handling": ("special", THEME["special"]),
}


def state_label(state: str) -> str:
    """Rich markup for a capability state value."""
    icon_key, color = STATE_STYLES.get(state, ("bullet", THEME["muted"]))
    return f"[{color}]{ICONS[icon_key]} {state.replace('_', ' ')}[/]"


__all__ = ["ICONS", "THEME", "console", "state_label"]
