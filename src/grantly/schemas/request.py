"""
Request descriptor and lifecycle phases.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple


class RequestPhase(str, Enum):
    """Lifecycle phases of a request inside the orchestrator."""

    CREATED = "created"
    VALIDATING = "validating"
    CHECKING = "checking"
    AWAITING_HOST = "awaiting_host"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_PHASES = frozenset({RequestPhase.COMPLETED})


@dataclass(eq=False)
class RequestDescriptor:
    """
    Data-only description of a capability request.

    The capability tuple is copied in at creation, without duplicates, and
    never changes. The only mutable parts are the lifecycle flags, changed
    through ``mark_inactive``, ``mark_completed`` and ``advance``.
    """

    surface: Any
    capabilities: Tuple[str, ...]
    callback: Optional[Callable[..., Any]] = None
    lazy: bool = False
    denial_behavior: Any = None
    rationale_title: Optional[str] = None
    rationale_message: Optional[str] = None
    rationale_provider: Any = None
    dialog_provider: Any = None
    continue_on_denied: bool = True
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.capabilities = tuple(dict.fromkeys(self.capabilities))
        self._lock = threading.Lock()
        self._active = True
        self._completed = False
        self._phase = RequestPhase.CREATED

    @classmethod
    def create(
        cls,
        surface: Any,
        capabilities: Iterable[str],
        callback: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> "RequestDescriptor":
        return cls(
            surface=surface,
            capabilities=tuple(capabilities),
            callback=callback,
            **kwargs,
        )

    @property
    def phase(self) -> RequestPhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._active and not self._completed

    @property
    def is_completed(self) -> bool:
        return self._completed

    def advance(self, phase: RequestPhase) -> None:
        """Move to a later phase; completed descriptors never move again."""
        with self._lock:
            if self._completed:
                return
            self._phase = phase

    def mark_inactive(self) -> None:
        with self._lock:
            self._active = False
            if not self._completed:
                self._phase = RequestPhase.CANCELLED

    def mark_completed(self) -> None:
        """Terminal transition; a completed descriptor cannot become active."""
        with self._lock:
            self._active = False
            self._completed = True
            self._phase = RequestPhase.COMPLETED

    def age(self, now: Optional[float] = None) -> float:
        return (time.monotonic() if now is None else now) - self.created_at

    def contains(self, capability: str) -> bool:
        return capability in self.capabilities

    def surface_is_valid(self) -> bool:
        """Ask the owning surface whether it is still alive, when it can tell."""
        checker = getattr(self.surface, "is_valid", None)
        if callable(checker):
            return bool(checker())
        return self.surface is not None

    def __repr__(self) -> str:
        return (
            f"RequestDescriptor(request_id={self.request_id!r}, "
            f"capabilities={list(self.capabilities)!r}, lazy={self.lazy}, "
            f"phase={self._phase.value}, active={self.is_active})"
        )
