"""
UI Theme configuration: colors and icons.
"""

from typing import Dict

THEME: Dict[str, str] = {
    # Capability states
    "granted": "#00ff88",  # Bright green
    "denied": "#d29922",  # Warning yellow
    "permanently_denied": "#f85149",  # Error red
    "not_declared": "#ff4444",  # Red
    "special": "#aaaaff",  # Light purple
    # Text
    "text": "#e6edf3",
    "muted": "#7d8590",
    "error": "#f85149",
    "warning": "#d29922",
    "success": "#00ff88",
    "border": "#30363d",
    "header": "#ffffff",
}

ICONS: Dict[str, str] = {
    "granted": "✓",
    "denied": "✗",
    "permanently_denied": "⊘",
    "not_declared": "?",
    "special": "⚙",
    "bullet": "•",
}
