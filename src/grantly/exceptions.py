"""
Error taxonomy for capability request orchestration.

Each error carries the structured data a caller needs to react to it and a
``resolution_guidance()`` text for developer-facing logs.
"""

import time
from typing import Iterable, List, Optional, Sequence


class GrantlyError(Exception):
    """Base class for every error raised or returned by the engine."""

    def resolution_guidance(self) -> str:
        return "No specific guidance available."


class NotDeclaredError(GrantlyError):
    """
    One or more requested capabilities were never declared by the application.

    Developer error: never retried. The only remedy is to declare the
    capability and rebuild.
    """

    def __init__(self, missing: Iterable[str], manifest_path: str = "grantly.yaml"):
        self.missing: List[str] = list(missing)
        self.manifest_path = manifest_path
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if not self.missing:
            return "Attempted to request capabilities that are not declared"
        if len(self.missing) == 1:
            head = f"Capability '{self.missing[0]}' is not declared"
        else:
            head = "The following capabilities are not declared: " + ", ".join(
                self.missing
            )
        return (
            f"{head}\n\nAll capabilities must be declared before they can be "
            "requested at runtime."
        )

    def resolution_guidance(self) -> str:
        lines = [
            "To resolve this issue:",
            f"1. Open the capability manifest ({self.manifest_path})",
            "2. Add the following entries under 'capabilities':",
            "",
        ]
        lines.extend(f"   - {capability}" for capability in self.missing)
        lines.append("")
        lines.append("3. Restart the application so the declaration cache reloads")
        return "\n".join(lines)


class ConcurrentRequestError(GrantlyError):
    """
    Another request is already in flight for the same owning surface.

    Transient: the caller waits, or the recovery manager detects that the
    blocking request is stuck.
    """

    STUCK_AFTER_SECONDS = 30.0

    def __init__(
        self,
        active_request_id: Optional[str] = None,
        active_capabilities: Optional[Sequence[str]] = None,
        started_at: Optional[float] = None,
        message: Optional[str] = None,
    ):
        self.active_request_id = active_request_id
        self.active_capabilities = tuple(active_capabilities or ())
        self.started_at = time.monotonic() if started_at is None else started_at
        super().__init__(message or self._build_message())

    def _build_message(self) -> str:
        message = "Cannot start new capability request - another request is already in progress"
        if self.active_request_id:
            message += f" (Request ID: {self.active_request_id})"
        if self.active_capabilities:
            message += "\nActive request capabilities: " + ", ".join(
                self.active_capabilities
            )
        return message

    def duration(self, now: Optional[float] = None) -> float:
        return (time.monotonic() if now is None else now) - self.started_at

    def resolution_guidance(self) -> str:
        guidance = [
            "To resolve this issue:",
            "1. Wait for the current request to complete before starting a new one",
            "2. Cancel the active request if its surface is being torn down",
            f"3. Check whether request {self.active_request_id or 'unknown'} can be cancelled",
        ]
        elapsed = self.duration()
        if elapsed > self.STUCK_AFTER_SECONDS:
            guidance.append(
                f"\nNote: the active request has been running for {int(elapsed)} "
                "seconds, which may indicate a stuck request."
            )
        return "\n".join(guidance)


class RequestRejectedError(ConcurrentRequestError):
    """The isolation gate refused to let a request reach the host."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        text = f"Capability request rejected by isolation gate: {reason}"
        if detail:
            text += f" ({detail})"
        super().__init__(message=text)

    def resolution_guidance(self) -> str:
        return (
            f"The request was blocked ({self.reason}). Wait for in-flight requests "
            "to finish or for the recovery window to elapse, then retry."
        )


class InvalidConfigurationError(GrantlyError):
    """
    Configuration is invalid.

    Cosmetic issues (theme, layout, style) can be repaired by substituting
    defaults; structural ones are fatal.
    """

    COSMETIC_MARKERS = ("theme", "layout", "style")

    def __init__(
        self,
        issue: str,
        suggested_fix: Optional[str] = None,
        cosmetic: Optional[bool] = None,
    ):
        self.issue = issue
        self.suggested_fix = suggested_fix
        if cosmetic is None:
            lowered = issue.lower()
            cosmetic = any(marker in lowered for marker in self.COSMETIC_MARKERS)
        self.cosmetic = cosmetic
        message = f"Invalid Grantly configuration: {issue}"
        if self.has_suggested_fix:
            message += f"\n\nSuggested fix: {suggested_fix}"
        super().__init__(message)

    @property
    def has_suggested_fix(self) -> bool:
        return bool(self.suggested_fix and self.suggested_fix.strip())

    def resolution_guidance(self) -> str:
        return self.suggested_fix or "Review the configuration values."

    @classmethod
    def null_callback(cls) -> "InvalidConfigurationError":
        return cls(
            "Callback cannot be None",
            "Provide a callable or GrantlyCallback using callback()",
            cosmetic=False,
        )

    @classmethod
    def empty_capabilities(cls) -> "InvalidConfigurationError":
        return cls(
            "Capability list cannot be empty",
            "Specify at least one capability using capabilities()",
            cosmetic=False,
        )

    @classmethod
    def null_surface(cls) -> "InvalidConfigurationError":
        return cls(
            "Owning surface cannot be None",
            "Ensure the surface is alive when making capability requests",
            cosmetic=False,
        )

    @classmethod
    def invalid_dialog_theme(cls, theme: int) -> "InvalidConfigurationError":
        return cls(
            f"Invalid dialog theme: {theme}",
            "Provide a non-negative theme id or use 0 for the default theme",
            cosmetic=True,
        )

    @classmethod
    def conflicting_configuration(cls, description: str) -> "InvalidConfigurationError":
        return cls(
            f"Conflicting configuration options: {description}",
            "Review your configuration and ensure options are compatible",
            cosmetic=False,
        )


class TransientHostError(GrantlyError):
    """A host call raised an unexpected platform error; safe to retry."""

    def __init__(self, message: str, attempts: int = 0, cause: Optional[BaseException] = None):
        self.attempts = attempts
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def resolution_guidance(self) -> str:
        if self.attempts:
            return f"Host call failed after {self.attempts} attempts; check platform health."
        return "Host call failed; it will be retried with backoff."


class NotInitializedError(GrantlyError):
    """The context was used before ``init`` or after ``shutdown``."""

    def __init__(self) -> None:
        super().__init__(
            "Grantly context not initialized. Call GrantlyContext.init() first."
        )
