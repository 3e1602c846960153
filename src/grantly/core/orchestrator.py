"""
Request orchestrator.

Central state machine for capability requests. Owns the registry of
in-flight requests, is the only component that issues host grant prompts,
and the only one that consumes host answers.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..callbacks import notify_cancelled
from ..config.grantly_config import DenialBehavior, GrantlyConfig
from ..config.timing_config import TimingConfig, get_timing_config
from ..exceptions import (
    ConcurrentRequestError,
    GrantlyError,
    InvalidConfigurationError,
    NotDeclaredError,
    RequestRejectedError,
    TransientHostError,
)
from ..host.protocol import HostPermissionSubsystem
from ..schemas.capability import CapabilityResult, CapabilityState, RoutingKind
from ..schemas.request import RequestDescriptor, RequestPhase
from ..schemas.result import Err, Ok, Result
from ..utils.threading import OwnerThreadDispatcher
from .capabilities import special_spec
from .checker import CapabilityStateChecker
from .declarations import DeclarationValidator
from .isolation import GateDecision, GateRejection, IsolationGate
from .recovery import ErrorRecoveryManager, RecoveryAction
from .special import SpecialCapabilityRouter

logger = logging.getLogger(__name__)

PERMANENT_DENIAL_TITLE = "Permission Permanently Denied"
PERMANENT_DENIAL_MESSAGE = (
    "These permissions were denied and will not be asked for again. "
    "You can enable them in the app settings."
)


@dataclass
class InFlightRequest:
    """Registry entry: a descriptor plus what the orchestrator did with it."""

    descriptor: RequestDescriptor
    registered_at: float
    prompted: Tuple[str, ...] = ()
    resolved: Dict[str, CapabilityResult] = field(default_factory=dict)

    @property
    def request_id(self) -> str:
        return self.descriptor.request_id


class RequestOrchestrator:
    """
    Composes declaration validation, state checking, special routing,
    admission control and recovery into one request lifecycle.

    Created -> Validating -> Checking -> {Resolved | AwaitingHost} -> Completed,
    with Cancelled reachable from any non-terminal phase.
    """

    def __init__(
        self,
        host: HostPermissionSubsystem,
        declarations: DeclarationValidator,
        checker: CapabilityStateChecker,
        router: SpecialCapabilityRouter,
        gate: IsolationGate,
        recovery: ErrorRecoveryManager,
        dispatcher: Optional[OwnerThreadDispatcher] = None,
        config: Optional[GrantlyConfig] = None,
        providers: Optional[Any] = None,
        timing: Optional[TimingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._host = host
        self._declarations = declarations
        self._checker = checker
        self._router = router
        self._gate = gate
        self._recovery = recovery
        self._dispatcher = dispatcher or OwnerThreadDispatcher()
        self._config = config or GrantlyConfig()
        self._providers = providers
        self._timing = timing or get_timing_config()
        self._clock = clock
        self._registry: Dict[str, InFlightRequest] = {}
        self._lock = threading.RLock()

    # Submission

    def submit(self, descriptor: RequestDescriptor) -> Result:
        """
        Start a request.

        Pre-dispatch failures are returned as ``Err``; anything that fails
        after the host prompt was issued reaches the callback instead.

        Args:
            descriptor: Data-only request description

        Returns:
            Ok(request_id) or Err(GrantlyError)
        """
        structural = self._structural_error(descriptor)
        if structural is not None:
            descriptor.mark_completed()
            return Err(structural)

        logger.debug(
            "Submitting request %s for %s (lazy=%s)",
            descriptor.request_id,
            list(descriptor.capabilities),
            descriptor.lazy,
        )

        descriptor.advance(RequestPhase.VALIDATING)
        try:
            self._declarations.validate(descriptor.capabilities)
        except NotDeclaredError as exc:
            return self._fail_before_dispatch(descriptor, exc)

        conflict = self._register(descriptor)
        if conflict is not None:
            return self._fail_before_dispatch(descriptor, conflict, registered=False)

        descriptor.advance(RequestPhase.CHECKING)
        try:
            record, needs_prompt = self._partition(descriptor)
        except GrantlyError as exc:
            return self._fail_before_dispatch(descriptor, exc)

        if needs_prompt:
            try:
                # every prompted capability must be declared, prerequisites included
                self._declarations.validate(needs_prompt)
                needs_prompt = self._show_rationale(record, needs_prompt)
            except GrantlyError as exc:
                return self._fail_before_dispatch(descriptor, exc)

        if not needs_prompt:
            logger.debug("Request %s resolved without a host prompt", descriptor.request_id)
            self._resolve(record)
            return Ok(descriptor.request_id)

        decision = self._gate.evaluate(needs_prompt)
        if not decision.admitted:
            return self._fail_before_dispatch(descriptor, self._gate_error(decision))

        if not self._issue_prompt(record, needs_prompt):
            logger.debug("Request %s was cancelled before its prompt", descriptor.request_id)
        return Ok(descriptor.request_id)

    def _structural_error(self, descriptor: RequestDescriptor) -> Optional[GrantlyError]:
        if descriptor.callback is None:
            return InvalidConfigurationError.null_callback()
        if not descriptor.capabilities:
            return InvalidConfigurationError.empty_capabilities()
        if descriptor.surface is None or not descriptor.surface_is_valid():
            return InvalidConfigurationError.null_surface()
        if descriptor.is_completed or descriptor.phase != RequestPhase.CREATED:
            return InvalidConfigurationError.conflicting_configuration(
                f"request {descriptor.request_id} was already submitted"
            )
        return None

    def _register(self, descriptor: RequestDescriptor) -> Optional[ConcurrentRequestError]:
        """Insert into the registry unless another request holds the surface."""
        recovered = False
        while True:
            with self._lock:
                blocking = self._find_for_surface(descriptor.surface)
                if blocking is None:
                    self._registry[descriptor.request_id] = InFlightRequest(
                        descriptor=descriptor, registered_at=self._clock()
                    )
                    logger.debug(
                        "Stored active request %s (total active: %d)",
                        descriptor.request_id,
                        len(self._registry),
                    )
                    return None

            error = ConcurrentRequestError(
                active_request_id=blocking.request_id,
                active_capabilities=blocking.descriptor.capabilities,
                started_at=blocking.registered_at,
            )
            logger.warning(
                "Concurrent request detected for surface of %s", blocking.request_id
            )
            decision = self._recovery.classify(error, now=self._clock())
            if recovered or decision.action != RecoveryAction.STALE_RECOVERY:
                return error

            logger.warning(
                "Cancelling stuck request %s and resubmitting %s",
                blocking.request_id,
                descriptor.request_id,
            )
            self.cancel(blocking.request_id)
            recovered = True

    def _partition(self, descriptor: RequestDescriptor) -> Tuple[InFlightRequest, List[str]]:
        """
        Check every capability and split the request into results that are
        already known and capabilities that still need a host prompt.
        """
        with self._lock:
            record = self._registry[descriptor.request_id]

        needs_prompt: List[str] = []
        for capability in descriptor.capabilities:
            result = self._checker.check(capability, descriptor.surface)

            if result.is_granted or result.is_not_declared or result.is_permanently_denied:
                record.resolved[capability] = result
                continue

            if result.requires_special_handling or special_spec(capability) is not None:
                self._route(record, capability, needs_prompt)
                continue

            needs_prompt.append(capability)

        logger.debug(
            "Request %s partitioned: %d resolved, %d to prompt",
            descriptor.request_id,
            len(record.resolved),
            len(needs_prompt),
        )
        return record, needs_prompt

    def _route(self, record: InFlightRequest, capability: str, needs_prompt: List[str]) -> None:
        outcome = self._router.route(capability, record.descriptor.surface)

        if outcome.kind == RoutingKind.ALREADY_GRANTED:
            record.resolved[capability] = CapabilityResult(
                capability=capability, state=CapabilityState.GRANTED
            )
        elif outcome.kind == RoutingKind.NAVIGATED_TO_SETTINGS:
            record.resolved[capability] = CapabilityResult(
                capability=capability, state=CapabilityState.REQUIRES_SPECIAL_HANDLING
            )
        else:
            for prompt_capability in outcome.prompt_capabilities:
                if prompt_capability not in needs_prompt:
                    needs_prompt.append(prompt_capability)
            if outcome.deferred:
                record.resolved[capability] = CapabilityResult(
                    capability=capability, state=CapabilityState.REQUIRES_SPECIAL_HANDLING
                )

    def _show_rationale(self, record: InFlightRequest, needs_prompt: List[str]) -> List[str]:
        """Explain before prompting; a declined rationale skips the prompt."""
        descriptor = record.descriptor
        if descriptor.lazy:
            return needs_prompt
        wants_rationale = (
            self._config.show_rationale_by_default
            or descriptor.rationale_provider is not None
            or descriptor.rationale_message is not None
        )
        if not wants_rationale:
            return needs_prompt

        explain = [
            c for c in needs_prompt if self._checker.requires_rationale(c, descriptor.surface)
        ]
        if not explain:
            return needs_prompt

        provider = descriptor.rationale_provider or getattr(self._providers, "rationale", None)
        if provider is None:
            return needs_prompt

        title = descriptor.rationale_title or self._config.default_rationale_title
        message = descriptor.rationale_message or self._config.default_rationale_message
        if provider.show(explain, title, message):
            return needs_prompt

        logger.debug("Rationale declined for %s", explain)
        for capability in explain:
            record.resolved[capability] = CapabilityResult(
                capability=capability,
                state=CapabilityState.DENIED,
                requires_rationale=True,
            )
        return [c for c in needs_prompt if c not in explain]

    def _gate_error(self, decision: GateDecision) -> GrantlyError:
        if decision.reason == GateRejection.UNDECLARED:
            return NotDeclaredError(decision.detail.split(", "))
        if decision.reason in (GateRejection.MALFORMED, GateRejection.EMPTY):
            return InvalidConfigurationError(
                f"Malformed capability identifiers: {decision.detail or 'none given'}",
                "Use non-empty identifiers without wildcards, separators or duplicates",
                cosmetic=False,
            )
        return RequestRejectedError(decision.reason.value, decision.detail)

    def _issue_prompt(self, record: InFlightRequest, needs_prompt: List[str]) -> bool:
        """Prompt the host unless the request was cancelled while it was checked."""
        descriptor = record.descriptor
        with self._lock:
            if not self._is_live(record):
                return False
            record.prompted = tuple(needs_prompt)
            self._gate.record_start(descriptor.request_id, record.prompted)
            descriptor.advance(RequestPhase.AWAITING_HOST)
        self._checker.history.mark_requested(record.prompted)
        logger.debug(
            "Issuing host prompt for %s (request %s)",
            list(record.prompted),
            descriptor.request_id,
        )

        self._recovery.retry_with_backoff(
            lambda: self._prompt_host(record),
            on_success=lambda _: None,
            on_failure=lambda error: self._prompt_failed(record, error),
        )
        return True

    def _prompt_host(self, record: InFlightRequest) -> None:
        with self._lock:
            live = self._is_live(record)
        if not live:
            # cancelled while a retry was pending
            logger.debug("Skipping host prompt for cancelled request %s", record.request_id)
            return
        self._host.issue_prompt(record.prompted, record.descriptor.surface)

    def _prompt_failed(self, record: InFlightRequest, error: GrantlyError) -> None:
        """Final failure of a prompt that was already dispatched."""
        if not self._claim(record.request_id):
            return
        self._gate.record_complete(record.request_id)
        if not self._gate.integrity_check():
            self._gate.trigger_lockout(f"host prompt failed: {error}")

        descriptor = record.descriptor
        self._dispatcher.post(self._invoke_callback, descriptor, Err(error))
        self._recovery.graceful_degradation(
            self._policy(descriptor),
            descriptor.callback,
            record.prompted,
            error=error,
            dialog_provider=self._dialog_provider(descriptor),
        )
        descriptor.mark_completed()

    def _fail_before_dispatch(
        self, descriptor: RequestDescriptor, error: GrantlyError, registered: bool = True
    ) -> Err:
        if registered:
            with self._lock:
                self._registry.pop(descriptor.request_id, None)
        self._recovery.handle(
            error,
            descriptor.callback,
            self._policy(descriptor),
            descriptor.capabilities,
            self._dialog_provider(descriptor),
            now=self._clock(),
        )
        descriptor.mark_completed()
        return Err(error)

    # Host answers

    def deliver(self, grants: Mapping[str, bool], request_id: Optional[str] = None) -> bool:
        """
        Consume a host answer.

        The answer is matched to the active request whose prompted
        capabilities contain every answered capability. Answers that match
        nothing are dropped.

        Args:
            grants: Capability to granted flag, as reported by the host
            request_id: Restrict matching to one request

        Returns:
            True if the answer was matched and delivered
        """
        answered = set(grants)
        with self._lock:
            record = self._match(answered, request_id)
            if record is None:
                logger.debug("Dropping unmatched host answer for %s", sorted(answered))
                return False
            del self._registry[record.request_id]
            record.descriptor.advance(RequestPhase.RESOLVED)

        self._gate.record_complete(record.request_id)
        surface = record.descriptor.surface
        for capability in record.prompted:
            record.resolved[capability] = self._classify_answer(
                capability, bool(grants.get(capability, False)), surface
            )
        logger.debug("Host answer matched request %s", record.request_id)
        self._dispatcher.post(self._complete, record)
        return True

    def _match(self, answered: set, request_id: Optional[str]) -> Optional[InFlightRequest]:
        if not answered:
            return None
        if request_id is not None:
            candidates = [self._registry[request_id]] if request_id in self._registry else []
        else:
            candidates = sorted(self._registry.values(), key=lambda r: r.registered_at)
        for record in candidates:
            if (
                record.descriptor.is_active
                and record.descriptor.phase == RequestPhase.AWAITING_HOST
                and answered <= set(record.prompted)
            ):
                return record
        return None

    def _classify_answer(self, capability: str, granted: bool, surface: Any) -> CapabilityResult:
        if granted:
            return CapabilityResult(capability=capability, state=CapabilityState.GRANTED)
        if self._router.is_special(capability):
            return CapabilityResult(capability=capability, state=CapabilityState.DENIED)
        try:
            rationale = self._checker.requires_rationale(capability, surface)
        except TransientHostError as exc:
            logger.warning("Rationale query failed after answer: %s", exc)
            rationale = True
        if rationale:
            return CapabilityResult(
                capability=capability, state=CapabilityState.DENIED, requires_rationale=True
            )
        # prompted by this request, so no rationale means "don't ask again"
        return CapabilityResult(capability=capability, state=CapabilityState.PERMANENTLY_DENIED)

    # Completion

    def _resolve(self, record: InFlightRequest) -> None:
        with self._lock:
            if self._registry.pop(record.request_id, None) is None:
                return
        record.descriptor.advance(RequestPhase.RESOLVED)
        self._dispatcher.post(self._complete, record)

    def _complete(self, record: InFlightRequest) -> None:
        """Deliver the aggregated result list, then run the follow-up UI."""
        descriptor = record.descriptor
        results = self._ordered_results(record)
        self._invoke_callback(descriptor, Ok(results))

        granted = [r for r in results if r.is_granted]
        permanent = [r for r in results if r.is_permanently_denied]
        denied = [r for r in results if not r.is_granted and not r.is_permanently_denied]

        toast = getattr(self._providers, "toast", None)
        if self._config.show_toasts and toast is not None:
            toast.show(granted, denied, permanent)

        if permanent and not descriptor.lazy:
            self._offer_settings(descriptor, [r.capability for r in permanent])

        # deferred and settings-routed capabilities are still pending, not refused
        refused = [
            r.capability
            for r in results
            if not r.is_granted and not r.requires_special_handling
        ]
        if refused:
            self._recovery.graceful_degradation(
                self._policy(descriptor),
                descriptor.callback,
                refused,
                dialog_provider=self._dialog_provider(descriptor),
            )
        descriptor.mark_completed()
        logger.debug("Request %s completed", descriptor.request_id)

    def _ordered_results(self, record: InFlightRequest) -> List[CapabilityResult]:
        order = list(record.descriptor.capabilities)
        order.extend(c for c in record.prompted if c not in order)
        return [record.resolved[c] for c in order if c in record.resolved]

    def _offer_settings(self, descriptor: RequestDescriptor, capabilities: List[str]) -> None:
        dialog = self._dialog_provider(descriptor)
        if dialog is None:
            return
        if not dialog.show(capabilities, PERMANENT_DENIAL_TITLE, PERMANENT_DENIAL_MESSAGE):
            return
        try:
            self._router.open_app_settings(capabilities[0], descriptor.surface)
        except GrantlyError as exc:
            logger.error("Could not open app settings: %s", exc)

    def _invoke_callback(self, descriptor: RequestDescriptor, result: Result) -> None:
        try:
            descriptor.callback(result)
        except Exception:
            logger.exception("Callback for request %s raised", descriptor.request_id)

    def _policy(self, descriptor: RequestDescriptor) -> DenialBehavior:
        policy = descriptor.denial_behavior or self._config.default_denial_behavior
        if policy == DenialBehavior.CONTINUE_APP_FLOW and not descriptor.continue_on_denied:
            return DenialBehavior.DISABLE_FEATURE
        return policy

    def _dialog_provider(self, descriptor: RequestDescriptor) -> Optional[Any]:
        return descriptor.dialog_provider or getattr(self._providers, "dialog", None)

    # Cancellation and housekeeping

    def cancel(self, request_id: str, notify: bool = False) -> bool:
        """
        Cancel an active request. Later host answers for it are dropped.

        Args:
            request_id: Request to cancel
            notify: Call the callback's ``on_cancelled`` hook

        Returns:
            True if the request was found
        """
        record = self._claim(request_id)
        if record is None:
            return False
        record.descriptor.mark_inactive()
        self._gate.record_complete(request_id)
        logger.debug("Cancelled request %s", request_id)
        if notify:
            self._dispatcher.post(notify_cancelled, record.descriptor.callback)
        record.descriptor.mark_completed()
        return True

    def cancel_all_for(self, surface: Any) -> int:
        """Cancel every request owned by a surface; returns how many."""
        with self._lock:
            ids = [
                request_id
                for request_id, record in self._registry.items()
                if record.descriptor.surface is surface
            ]
        return sum(1 for request_id in ids if self.cancel(request_id))

    def active_requests(self) -> Dict[str, RequestDescriptor]:
        with self._lock:
            return {
                request_id: record.descriptor
                for request_id, record in self._registry.items()
            }

    def has_active_requests(self) -> bool:
        with self._lock:
            return bool(self._registry)

    def has_active_request_for(self, surface: Any) -> bool:
        with self._lock:
            return self._find_for_surface(surface) is not None

    def prompted_for(self, request_id: str) -> Tuple[str, ...]:
        with self._lock:
            record = self._registry.get(request_id)
            return record.prompted if record else ()

    def sweep_expired(self) -> int:
        """
        Purge requests that are too old, already completed, or whose surface
        reports itself torn down.

        Returns:
            Number of purged requests
        """
        now = self._clock()
        with self._lock:
            expired = [
                request_id
                for request_id, record in self._registry.items()
                if now - record.registered_at > self._timing.max_request_age
                or record.descriptor.is_completed
                or not record.descriptor.surface_is_valid()
            ]
        purged = sum(1 for request_id in expired if self.cancel(request_id))
        if purged:
            logger.debug("Expiry sweep purged %d requests", purged)
        self._gate.sweep()
        return purged

    def shutdown(self) -> int:
        with self._lock:
            ids = list(self._registry)
        return sum(1 for request_id in ids if self.cancel(request_id))

    def _claim(self, request_id: str) -> Optional[InFlightRequest]:
        with self._lock:
            return self._registry.pop(request_id, None)

    def _is_live(self, record: InFlightRequest) -> bool:
        return (
            self._registry.get(record.request_id) is record
            and record.descriptor.is_active
        )

    def _find_for_surface(self, surface: Any) -> Optional[InFlightRequest]:
        for record in self._registry.values():
            if record.descriptor.surface is surface and record.descriptor.is_active:
                return record
        return None


class ExpirySweeper:
    """Daemon thread that runs ``sweep_expired`` periodically."""

    def __init__(self, orchestrator: RequestOrchestrator, interval: float):
        self._orchestrator = orchestrator
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="grantly-expiry-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._orchestrator.sweep_expired()
            except Exception:
                logger.exception("Expiry sweep failed")
