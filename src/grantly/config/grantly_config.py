"""
Engine-wide configuration loaded from code or environment variables.

Environment Variables:
- GRANTLY_LAZY: Default lazy mode (true/false)
- GRANTLY_DENIAL_BEHAVIOR: continue_app_flow, disable_feature,
  exit_app_with_dialog, exit_app_immediately
- GRANTLY_LOGGING: Enable verbose engine logging
- GRANTLY_DIALOG_THEME / GRANTLY_TOAST_THEME: Non-negative theme ids
- GRANTLY_SHOW_RATIONALE: Show rationale before re-prompting
- GRANTLY_RATIONALE_TITLE / GRANTLY_RATIONALE_MESSAGE: Default rationale text
- GRANTLY_SHOW_TOASTS: Show result toasts after delivery
"""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from dotenv import load_dotenv

from ..exceptions import InvalidConfigurationError

DEFAULT_RATIONALE_TITLE = "Permission Required"
DEFAULT_RATIONALE_MESSAGE = "This permission is needed for the app to function properly."

_TRUE_VALUES = {"1", "true", "yes", "on"}


class DenialBehavior(str, Enum):
    """Caller-selected strategy when a capability is ultimately not granted."""

    CONTINUE_APP_FLOW = "continue_app_flow"
    DISABLE_FEATURE = "disable_feature"
    EXIT_APP_WITH_DIALOG = "exit_app_with_dialog"
    EXIT_APP_IMMEDIATELY = "exit_app_immediately"


@dataclass(frozen=True)
class GrantlyConfig:
    """Immutable engine configuration."""

    default_lazy: bool = False
    default_denial_behavior: DenialBehavior = DenialBehavior.CONTINUE_APP_FLOW
    enable_logging: bool = False
    dialog_theme: int = 0
    toast_theme: int = 0
    show_rationale_by_default: bool = True
    default_rationale_title: str = DEFAULT_RATIONALE_TITLE
    default_rationale_message: str = DEFAULT_RATIONALE_MESSAGE
    show_toasts: bool = True
    ui_provider: Optional[Any] = None

    def validate(self) -> None:
        """
        Check the configuration for invalid values.

        Raises:
            InvalidConfigurationError: cosmetic for bad themes, structural for
                missing rationale text or a wrong denial behavior type
        """
        if not isinstance(self.default_denial_behavior, DenialBehavior):
            raise InvalidConfigurationError(
                f"Unknown denial behavior: {self.default_denial_behavior!r}",
                "Use one of the DenialBehavior members",
                cosmetic=False,
            )
        if not self.default_rationale_title or not self.default_rationale_title.strip():
            raise InvalidConfigurationError(
                "Rationale title cannot be empty",
                "Set a non-empty default_rationale_title",
                cosmetic=False,
            )
        if (
            not self.default_rationale_message
            or not self.default_rationale_message.strip()
        ):
            raise InvalidConfigurationError(
                "Rationale message cannot be empty",
                "Set a non-empty default_rationale_message",
                cosmetic=False,
            )
        if self.dialog_theme < 0:
            raise InvalidConfigurationError.invalid_dialog_theme(self.dialog_theme)
        if self.toast_theme < 0:
            raise InvalidConfigurationError(
                f"Invalid toast theme: {self.toast_theme}",
                "Provide a non-negative theme id or use 0 for the default theme",
                cosmetic=True,
            )

    def with_cosmetic_defaults(self) -> "GrantlyConfig":
        """Return a copy with cosmetic fields reset to their defaults."""
        return replace(
            self,
            dialog_theme=max(self.dialog_theme, 0),
            toast_theme=max(self.toast_theme, 0),
        )

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "GrantlyConfig":
        """
        Build a configuration from GRANTLY_* environment variables.

        Args:
            dotenv: Load a .env file first

        Returns:
            GrantlyConfig (not yet validated)
        """
        if dotenv:
            load_dotenv()

        behavior_raw = os.getenv("GRANTLY_DENIAL_BEHAVIOR")
        try:
            behavior = (
                DenialBehavior(behavior_raw.strip().lower())
                if behavior_raw
                else DenialBehavior.CONTINUE_APP_FLOW
            )
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"Unknown denial behavior: {behavior_raw!r}",
                "Use continue_app_flow, disable_feature, exit_app_with_dialog "
                "or exit_app_immediately",
                cosmetic=False,
            ) from exc

        return cls(
            default_lazy=_env_bool("GRANTLY_LAZY", False),
            default_denial_behavior=behavior,
            enable_logging=_env_bool("GRANTLY_LOGGING", False),
            dialog_theme=_env_int("GRANTLY_DIALOG_THEME", 0),
            toast_theme=_env_int("GRANTLY_TOAST_THEME", 0),
            show_rationale_by_default=_env_bool("GRANTLY_SHOW_RATIONALE", True),
            default_rationale_title=os.getenv(
                "GRANTLY_RATIONALE_TITLE", DEFAULT_RATIONALE_TITLE
            ),
            default_rationale_message=os.getenv(
                "GRANTLY_RATIONALE_MESSAGE", DEFAULT_RATIONALE_MESSAGE
            ),
            show_toasts=_env_bool("GRANTLY_SHOW_TOASTS", True),
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"{name} must be an integer, got {raw!r}",
            f"Set {name} to a whole number",
            cosmetic="THEME" in name,
        ) from exc
