"""
In-memory host permission subsystem.

Backs the CLI scenarios and the test-suite. Grant state lives in plain sets
and every host interaction is recorded so callers can assert on it.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..schemas.capability import NavigationTarget
from .protocol import PlatformVersion

logger = logging.getLogger(__name__)


@dataclass
class PromptRecord:
    """One host prompt issued by the engine."""

    capabilities: Tuple[str, ...]
    surface: Any = None
    answered: bool = False


@dataclass
class NavigationRecord:
    """One settings navigation issued by the engine."""

    capability: str
    target: NavigationTarget
    surface: Any = None


@dataclass
class SimulatedHost:
    """
    Deterministic host backend.

    Attributes:
        identity: Application identity reported by ``app_identity``
        version: Platform version reported by ``platform_version``
        granted: Capabilities currently granted
        rationale: Capabilities for which rationale should be shown
        answers: Default answer per capability used by ``answer_next``
        rationale_after_denial: Whether a denied prompt answer makes the host
            start recommending rationale (a first, soft denial)
        prompt_failures: Number of upcoming ``issue_prompt`` calls that raise
    """

    identity: str = "com.example.app"
    version: int = PlatformVersion.NOTIFICATIONS
    granted: Set[str] = field(default_factory=set)
    rationale: Set[str] = field(default_factory=set)
    answers: Dict[str, bool] = field(default_factory=dict)
    rationale_after_denial: bool = True
    prompt_failures: int = 0
    reported_identity: Optional[str] = None
    prompts: List[PromptRecord] = field(default_factory=list)
    navigations: List[NavigationRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.granted = set(self.granted)
        self.rationale = set(self.rationale)
        self._pending: Deque[PromptRecord] = deque()
        self._deliver: Optional[Callable[..., bool]] = None
        self._lock = threading.Lock()

    # Host protocol

    def app_identity(self) -> str:
        return self.reported_identity or self.identity

    def platform_version(self) -> int:
        return int(self.version)

    def query_grant_state(self, capability: str) -> bool:
        return capability in self.granted

    def should_show_rationale(self, capability: str, surface: Any = None) -> bool:
        return capability in self.rationale and capability not in self.granted

    def issue_prompt(self, capabilities: Sequence[str], surface: Any = None) -> None:
        with self._lock:
            if self.prompt_failures > 0:
                self.prompt_failures -= 1
                raise RuntimeError("simulated host prompt failure")
            record = PromptRecord(capabilities=tuple(capabilities), surface=surface)
            self.prompts.append(record)
            self._pending.append(record)
        logger.debug("Simulated prompt for %s", list(capabilities))

    def navigate_to_scoped_settings(
        self, capability: str, target: NavigationTarget, surface: Any = None
    ) -> None:
        self.navigations.append(NavigationRecord(capability, target, surface))
        logger.debug("Simulated navigation to %s (%s)", target.action, target.scope)

    # Scenario helpers

    def bind(self, deliver: Callable[..., bool]) -> None:
        """Register the orchestrator entry point that receives answers."""
        self._deliver = deliver

    @property
    def pending_prompts(self) -> List[PromptRecord]:
        return list(self._pending)

    def grant(self, *capabilities: str) -> None:
        self.granted.update(capabilities)

    def revoke(self, *capabilities: str) -> None:
        self.granted.difference_update(capabilities)

    def answer_next(self, grants: Optional[Mapping[str, bool]] = None) -> bool:
        """
        Answer the oldest pending prompt and forward it to the engine.

        Args:
            grants: Per-capability answer; falls back to ``answers`` and then
                to a denial

        Returns:
            Whether the engine matched the answer to a request
        """
        with self._lock:
            if not self._pending:
                return False
            record = self._pending.popleft()
            record.answered = True

        grants = dict(grants or {})
        resolved: Dict[str, bool] = {}
        for capability in record.capabilities:
            allowed = grants.get(capability, self.answers.get(capability, False))
            resolved[capability] = allowed
            if allowed:
                self.granted.add(capability)
                self.rationale.discard(capability)
            elif self.rationale_after_denial and capability not in self.rationale:
                self.rationale.add(capability)
            else:
                # second denial: user chose not to be asked again
                self.rationale.discard(capability)

        if self._deliver is None:
            return False
        return self._deliver(resolved)

    def answer_all(self, grants: Optional[Mapping[str, bool]] = None) -> int:
        """Answer every pending prompt; returns how many were matched."""
        matched = 0
        while self._pending:
            if self.answer_next(grants):
                matched += 1
        return matched

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SimulatedHost":
        """Build a host from a scenario's ``host`` section."""
        return cls(
            identity=str(data.get("identity", "com.example.app")),
            version=int(data.get("version", PlatformVersion.NOTIFICATIONS)),
            granted=set(_as_list(data.get("granted"))),
            rationale=set(_as_list(data.get("rationale"))),
            answers={str(k): bool(v) for k, v in (data.get("answers") or {}).items()},
            rationale_after_denial=bool(data.get("rationale_after_denial", True)),
        )


def _as_list(value: Optional[Iterable[Any]]) -> List[str]:
    if not value:
        return []
    return [str(item) for item in value]
