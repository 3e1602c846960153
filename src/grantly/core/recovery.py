"""
Error recovery manager.

Classifies failures, retries transient host errors with exponential backoff
and jitter, and maps unrecoverable failures to the caller's denial policy.
"""

import logging
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple

from ..callbacks import notify_degraded
from ..config.grantly_config import DenialBehavior
from ..config.timing_config import TimingConfig, get_timing_config
from ..exceptions import (
    ConcurrentRequestError,
    GrantlyError,
    InvalidConfigurationError,
    NotDeclaredError,
    RequestRejectedError,
    TransientHostError,
)
from ..utils.threading import OwnerThreadDispatcher

logger = logging.getLogger(__name__)


class RecoveryAction(str, Enum):
    """What the manager decided to do with a failure."""

    RETRY = "retry"
    WAIT = "wait"
    STALE_RECOVERY = "stale_recovery"
    RECOVERED_WITH_DEFAULTS = "recovered_with_defaults"
    DEGRADE = "degrade"
    FATAL = "fatal"


@dataclass(frozen=True)
class RecoveryDecision:
    action: RecoveryAction
    error: BaseException
    recoverable: bool
    message: str = ""

    @property
    def degrades(self) -> bool:
        return self.action in (RecoveryAction.DEGRADE, RecoveryAction.FATAL)


@dataclass(frozen=True)
class DegradationOutcome:
    """
    Caller-visible result of applying a denial policy.

    The engine never exits the process itself; ``exit_requested`` tells the
    caller that its chosen policy asks for it.
    """

    policy: DenialBehavior
    capabilities: Tuple[str, ...] = ()
    error: Optional[BaseException] = None
    feature_disabled: bool = False
    exit_requested: bool = False
    user_acknowledged: Optional[bool] = None


EXIT_DIALOG_TITLE = "Permission Required"
EXIT_DIALOG_MESSAGE = "This app cannot continue without the requested permissions."


class ErrorRecoveryManager:
    """
    Error taxonomy to strategy mapping.

    ``rand`` and ``dispatcher`` are injectable so tests can make jitter and
    scheduling deterministic.
    """

    def __init__(
        self,
        timing: Optional[TimingConfig] = None,
        dispatcher: Optional[OwnerThreadDispatcher] = None,
        rand: Callable[[], float] = random.random,
    ):
        self._timing = timing or get_timing_config()
        self._dispatcher = dispatcher or OwnerThreadDispatcher()
        self._rand = rand
        self._attempts = 0
        self._lock = threading.Lock()

    @property
    def attempts(self) -> int:
        return self._attempts

    def classify(self, error: BaseException, now: Optional[float] = None) -> RecoveryDecision:
        """
        Pick a strategy for an error without side effects.

        Args:
            error: The failure to classify
            now: Monotonic time used to age concurrent-request conflicts

        Returns:
            RecoveryDecision
        """
        if isinstance(error, NotDeclaredError):
            return RecoveryDecision(
                RecoveryAction.DEGRADE, error, False, "capability not declared"
            )

        if isinstance(error, RequestRejectedError):
            return RecoveryDecision(
                RecoveryAction.WAIT, error, True, f"gate rejected request: {error.reason}"
            )

        if isinstance(error, ConcurrentRequestError):
            age = error.duration(now)
            if age > self._timing.stale_request_threshold:
                return RecoveryDecision(
                    RecoveryAction.STALE_RECOVERY,
                    error,
                    True,
                    f"blocking request stuck for {age:.0f}s",
                )
            return RecoveryDecision(
                RecoveryAction.WAIT, error, True, "another request is in progress"
            )

        if isinstance(error, InvalidConfigurationError):
            if error.cosmetic:
                return RecoveryDecision(
                    RecoveryAction.RECOVERED_WITH_DEFAULTS,
                    error,
                    True,
                    "cosmetic configuration replaced with defaults",
                )
            return RecoveryDecision(
                RecoveryAction.FATAL, error, False, "structural configuration error"
            )

        if isinstance(error, TransientHostError):
            return RecoveryDecision(
                RecoveryAction.RETRY, error, True, "transient host failure"
            )

        if isinstance(error, GrantlyError):
            return RecoveryDecision(RecoveryAction.FATAL, error, False, str(error))

        return RecoveryDecision(
            RecoveryAction.RETRY, error, True, f"unexpected {type(error).__name__}"
        )

    def handle(
        self,
        error: BaseException,
        callback: Optional[Any] = None,
        policy: Optional[DenialBehavior] = None,
        capabilities: Sequence[str] = (),
        dialog_provider: Optional[Any] = None,
        now: Optional[float] = None,
    ) -> RecoveryDecision:
        """
        Classify an error and apply the side effects its strategy requires.

        Only degradation is applied here; delivering the error itself to the
        callback is left to the caller so it happens exactly once.
        """
        decision = self.classify(error, now)

        if isinstance(error, NotDeclaredError):
            logger.error("%s\n%s", error, error.resolution_guidance())
        elif decision.action == RecoveryAction.FATAL:
            logger.error("Unrecoverable error: %s", error)
        elif decision.action == RecoveryAction.STALE_RECOVERY:
            logger.warning("Stale request detected, attempting recovery: %s", decision.message)
        else:
            logger.debug("Recovery decision %s: %s", decision.action.value, decision.message)

        if decision.degrades:
            self.graceful_degradation(
                policy or DenialBehavior.CONTINUE_APP_FLOW,
                callback,
                capabilities,
                error=error,
                dialog_provider=dialog_provider,
            )
        return decision

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay before retry number ``attempt`` (1-based).

        initial * 2^(attempt-1), capped at the maximum, plus up to
        ``retry_jitter_ratio`` of random jitter.
        """
        base = self._timing.retry_initial_delay * (2 ** max(attempt - 1, 0))
        delay = min(base, self._timing.retry_max_delay)
        jitter = delay * self._timing.retry_jitter_ratio * self._rand()
        return delay + jitter

    def retry_with_backoff(
        self,
        operation: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_failure: Callable[[GrantlyError], None],
    ) -> None:
        """
        Run ``operation`` until it succeeds or the attempt ceiling is hit.

        The first attempt runs immediately; later attempts are scheduled
        through the dispatcher. GrantlyErrors other than TransientHostError
        are not retried.
        """
        self._attempt(operation, on_success, on_failure, 1)

    def _attempt(
        self,
        operation: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_failure: Callable[[GrantlyError], None],
        attempt: int,
    ) -> None:
        with self._lock:
            self._attempts = attempt
        try:
            value = operation()
        except GrantlyError as exc:
            if not isinstance(exc, TransientHostError):
                self.reset()
                on_failure(exc)
                return
            self._schedule_retry(operation, on_success, on_failure, attempt, exc)
            return
        except Exception as exc:
            self._schedule_retry(operation, on_success, on_failure, attempt, exc)
            return

        if attempt > 1:
            logger.info("Operation succeeded after %d attempts", attempt)
        self.reset()
        on_success(value)

    def _schedule_retry(
        self,
        operation: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_failure: Callable[[GrantlyError], None],
        attempt: int,
        exc: BaseException,
    ) -> None:
        if attempt >= self._timing.retry_max_attempts:
            logger.error("Operation failed after %d attempts: %s", attempt, exc)
            self.reset()
            on_failure(
                TransientHostError(
                    f"Host call failed after {attempt} attempts: {exc}",
                    attempts=attempt,
                    cause=exc,
                )
            )
            return

        delay = self.backoff_delay(attempt)
        logger.warning(
            "Attempt %d failed (%s), retrying in %.2fs", attempt, exc, delay
        )
        self._dispatcher.call_later(
            delay, lambda: self._attempt(operation, on_success, on_failure, attempt + 1)
        )

    def reset(self) -> None:
        with self._lock:
            self._attempts = 0

    def graceful_degradation(
        self,
        policy: DenialBehavior,
        callback: Optional[Any] = None,
        capabilities: Sequence[str] = (),
        error: Optional[BaseException] = None,
        dialog_provider: Optional[Any] = None,
    ) -> DegradationOutcome:
        """
        Apply the caller's denial policy and report the outcome.

        Args:
            policy: Caller-selected DenialBehavior
            callback: Receives the outcome through ``on_degraded`` when it has one
            capabilities: Capabilities that were not granted
            error: Failure that led here, if any
            dialog_provider: Used by EXIT_APP_WITH_DIALOG

        Returns:
            DegradationOutcome
        """
        capabilities = tuple(capabilities)
        if policy == DenialBehavior.DISABLE_FEATURE:
            outcome = DegradationOutcome(policy, capabilities, error, feature_disabled=True)
        elif policy == DenialBehavior.EXIT_APP_WITH_DIALOG:
            acknowledged = None
            if dialog_provider is not None:
                acknowledged = bool(
                    dialog_provider.show(capabilities, EXIT_DIALOG_TITLE, EXIT_DIALOG_MESSAGE)
                )
            outcome = DegradationOutcome(
                policy,
                capabilities,
                error,
                exit_requested=True,
                user_acknowledged=acknowledged,
            )
        elif policy == DenialBehavior.EXIT_APP_IMMEDIATELY:
            outcome = DegradationOutcome(policy, capabilities, error, exit_requested=True)
        else:
            outcome = DegradationOutcome(DenialBehavior.CONTINUE_APP_FLOW, capabilities, error)

        logger.info(
            "Applied denial policy %s for %s", outcome.policy.value, list(capabilities)
        )
        if callback is not None:
            self._dispatcher.post(notify_degraded, callback, outcome)
        return outcome
