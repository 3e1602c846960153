"""
Isolation and concurrency gate.

Every request passes through ``admit`` before any host prompt is issued.
The gate owns the global circuit breaker (recovery lockout), the rate limit,
identifier hygiene and the in-flight ceiling.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from ..config.timing_config import TimingConfig, get_timing_config
from ..host.protocol import HostPermissionSubsystem
from .capabilities import CAMERA
from .declarations import DeclarationValidator

logger = logging.getLogger(__name__)


class GateRejection(str, Enum):
    """Why the gate refused a request."""

    EMPTY = "empty_request"
    LOCKOUT = "recovery_lockout"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed_capability"
    UNDECLARED = "undeclared_capability"
    CONCURRENCY_LIMIT = "concurrency_limit"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of one admission check."""

    admitted: bool
    reason: Optional[GateRejection] = None
    detail: str = ""


@dataclass(frozen=True)
class GateStatus:
    """Snapshot of gate state for diagnostics."""

    app_identity: str
    in_flight: int
    in_recovery: bool
    seconds_since_last_call: Optional[float]


class IsolationGate:
    """
    Admission control in front of every host prompt.

    Checks run in a fixed order and any failure rejects the whole request:
    lockout, rate limit, identifier hygiene, declarations, in-flight ceiling.
    """

    MALFORMED_PATTERNS = [
        r"\.\.",
        r"[*?]",
        r"[/\\]",
        r"\s",
        r"[\x00-\x1f\x7f]",
    ]

    BASELINE_CAPABILITY = CAMERA

    def __init__(
        self,
        host: HostPermissionSubsystem,
        declarations: DeclarationValidator,
        timing: Optional[TimingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._host = host
        self._declarations = declarations
        self._timing = timing or get_timing_config()
        self._clock = clock
        self._in_flight: Dict[str, float] = {}
        self._last_host_call: Optional[float] = None
        self._in_recovery = False
        self._lock = threading.RLock()
        self._malformed = [re.compile(p) for p in self.MALFORMED_PATTERNS]

    def admit(self, capabilities: Sequence[str]) -> bool:
        """Return True if the request may reach the host."""
        return self.evaluate(capabilities).admitted

    def evaluate(self, capabilities: Sequence[str]) -> GateDecision:
        """
        Run every admission check in order.

        Args:
            capabilities: Capability identifiers exactly as they will be prompted

        Returns:
            GateDecision with the first failing reason, if any
        """
        if not capabilities:
            logger.warning("Invalid capability request: no capabilities")
            return GateDecision(False, GateRejection.EMPTY)

        with self._lock:
            if self._in_recovery:
                elapsed = self._clock() - (self._last_host_call or 0.0)
                if elapsed < self._timing.lockout_duration:
                    logger.warning("Gate in recovery mode, blocking capability request")
                    return GateDecision(
                        False,
                        GateRejection.LOCKOUT,
                        f"{self._timing.lockout_duration - elapsed:.1f}s remaining",
                    )
                self._in_recovery = False
                logger.info("Gate recovery completed")

            if not self._rate_limit_ok():
                logger.warning("Request rate limit exceeded, blocking capability request")
                return GateDecision(False, GateRejection.RATE_LIMITED)

        malformed = self.find_malformed(capabilities)
        if malformed:
            logger.warning("Invalid capability identifiers detected: %s", malformed)
            return GateDecision(False, GateRejection.MALFORMED, ", ".join(malformed))

        missing = self._declarations.missing(capabilities)
        if missing:
            logger.warning("Undeclared capabilities detected: %s", missing)
            return GateDecision(False, GateRejection.UNDECLARED, ", ".join(missing))

        with self._lock:
            self.sweep()
            if len(self._in_flight) >= self._timing.max_concurrent_requests:
                logger.warning("Concurrent request limit exceeded, blocking capability request")
                return GateDecision(
                    False,
                    GateRejection.CONCURRENCY_LIMIT,
                    f"{len(self._in_flight)} in flight",
                )

        logger.debug("Gate admitted request for %d capabilities", len(capabilities))
        return GateDecision(True)

    def is_valid_identifier(self, capability: str) -> bool:
        """
        Check one identifier: non-empty, bounded length, no traversal or
        wildcard tokens, no whitespace or control characters.
        """
        if not isinstance(capability, str) or not capability.strip():
            return False
        if len(capability) > self._timing.max_capability_length:
            return False
        return not any(p.search(capability) for p in self._malformed)

    def find_malformed(self, capabilities: Sequence[str]) -> list:
        """Invalid or duplicated identifiers, in request order."""
        seen = set()
        bad = []
        for capability in capabilities:
            if not self.is_valid_identifier(capability):
                bad.append(repr(capability) if isinstance(capability, str) else str(capability))
                continue
            if capability in seen:
                bad.append(f"{capability} (duplicate)")
            seen.add(capability)
        return bad

    def record_start(self, request_id: str, capabilities: Sequence[str]) -> None:
        """Track a request that is about to reach the host."""
        if not request_id:
            return
        with self._lock:
            now = self._clock()
            self._in_flight[request_id] = now
            self._last_host_call = now
            logger.debug(
                "Recorded request start: %s with %d capabilities",
                request_id,
                len(capabilities),
            )
            self.sweep()

    def record_complete(self, request_id: str) -> None:
        if not request_id:
            return
        with self._lock:
            started = self._in_flight.pop(request_id, None)
            if started is not None:
                logger.debug(
                    "Request completed: %s (duration: %.0fms)",
                    request_id,
                    (self._clock() - started) * 1000,
                )

    def trigger_lockout(self, reason: str) -> None:
        """
        Enter recovery mode: reject every request until the lockout window
        elapses and drop all tracked in-flight requests.
        """
        with self._lock:
            self._in_recovery = True
            self._last_host_call = self._clock()
            self._in_flight.clear()
        logger.warning("Gate recovery triggered: %s", reason)

    @property
    def in_recovery(self) -> bool:
        return self._in_recovery

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def is_tracked(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._in_flight

    def sweep(self) -> int:
        """Purge entries older than the gate timeout; returns how many."""
        with self._lock:
            now = self._clock()
            expired = [
                request_id
                for request_id, started in self._in_flight.items()
                if now - started > self._timing.gate_request_timeout
            ]
            for request_id in expired:
                del self._in_flight[request_id]
                logger.debug("Cleaned up expired gate entry: %s", request_id)
            return len(expired)

    def integrity_check(self) -> bool:
        """
        Cheap self-test: the host must report our own identity and answer a
        baseline grant query without raising.
        """
        logger.debug("Performing gate integrity check")
        try:
            identity = self._host.app_identity()
            if identity != self._declarations.app_identity:
                logger.error(
                    "Integrity check failed: identity mismatch (%s != %s)",
                    identity,
                    self._declarations.app_identity,
                )
                return False
            self._host.query_grant_state(self.BASELINE_CAPABILITY)
        except Exception as exc:
            logger.error("Integrity check failed with exception: %s", exc)
            return False
        logger.debug("Integrity check passed")
        return True

    def status(self) -> GateStatus:
        with self._lock:
            since = (
                None
                if self._last_host_call is None
                else self._clock() - self._last_host_call
            )
            return GateStatus(
                app_identity=self._declarations.app_identity,
                in_flight=len(self._in_flight),
                in_recovery=self._in_recovery,
                seconds_since_last_call=since,
            )

    def _rate_limit_ok(self) -> bool:
        if self._last_host_call is None:
            return True
        return self._clock() - self._last_host_call >= self._timing.min_request_interval
