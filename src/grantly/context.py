"""
Engine context with an explicit init/shutdown lifecycle.

Every component is constructed once here and handed its collaborators;
there is no process-wide singleton.
"""

import asyncio
import logging
import random
import time
from typing import Any, Callable, List, Mapping, Optional

from .config.grantly_config import GrantlyConfig
from .config.timing_config import TimingConfig, get_timing_config
from .core.checker import CapabilityStateChecker, RequestHistory
from .core.declarations import DeclarationValidator
from .core.isolation import GateStatus, IsolationGate
from .core.orchestrator import ExpirySweeper, RequestOrchestrator
from .core.recovery import ErrorRecoveryManager, RecoveryAction
from .core.request_builder import PermissionRequest
from .core.special import SpecialCapabilityRouter
from .exceptions import InvalidConfigurationError, NotInitializedError
from .host.protocol import DeclarationSource, HostPermissionSubsystem
from .providers import UIProviders
from .schemas.capability import CapabilityResult
from .schemas.request import RequestDescriptor
from .schemas.result import Result
from .utils.logging import setup_logging
from .utils.threading import OwnerThreadDispatcher

logger = logging.getLogger(__name__)


class GrantlyContext:
    """
    Owns one engine instance.

    Use ``GrantlyContext.init(...)`` to build a ready context and
    ``shutdown()`` to cancel outstanding requests and stop the sweeper.
    """

    def __init__(
        self,
        host: HostPermissionSubsystem,
        declaration_source: DeclarationSource,
        config: Optional[GrantlyConfig] = None,
        timing: Optional[TimingConfig] = None,
        providers: Optional[UIProviders] = None,
        dispatcher: Optional[OwnerThreadDispatcher] = None,
        clock: Callable[[], float] = time.monotonic,
        rand: Callable[[], float] = random.random,
        manifest_path: str = "grantly.yaml",
    ):
        self._timing = timing or get_timing_config()
        self._dispatcher = dispatcher or OwnerThreadDispatcher()
        self._recovery = ErrorRecoveryManager(self._timing, self._dispatcher, rand)
        self._config = self._validated(config or GrantlyConfig())
        if self._config.enable_logging:
            setup_logging(verbose=True)

        self._host = host
        self._app_identity = host.app_identity()
        self._providers = providers or self._config.ui_provider or UIProviders.console()
        self._declarations = DeclarationValidator(
            declaration_source, self._app_identity, manifest_path
        )
        self._history = RequestHistory()
        self._checker = CapabilityStateChecker(host, self._declarations, self._history)
        self._router = SpecialCapabilityRouter(
            host, self._checker, self._declarations, self._app_identity
        )
        self._gate = IsolationGate(host, self._declarations, self._timing, clock)
        self._orchestrator = RequestOrchestrator(
            host,
            self._declarations,
            self._checker,
            self._router,
            self._gate,
            self._recovery,
            dispatcher=self._dispatcher,
            config=self._config,
            providers=self._providers,
            timing=self._timing,
            clock=clock,
        )
        self._sweeper = ExpirySweeper(self._orchestrator, self._timing.sweep_interval)
        self._initialized = False

    @classmethod
    def init(
        cls,
        host: HostPermissionSubsystem,
        declaration_source: DeclarationSource,
        config: Optional[GrantlyConfig] = None,
        start_sweeper: bool = True,
        **kwargs: Any,
    ) -> "GrantlyContext":
        """
        Build and start a context.

        Args:
            host: Host permission subsystem
            declaration_source: Where declared capabilities come from
            config: Engine configuration; cosmetic problems are repaired
            start_sweeper: Run the background expiry sweeper
            **kwargs: Forwarded to the constructor (timing, providers, clock...)

        Returns:
            Initialized GrantlyContext

        Raises:
            InvalidConfigurationError: for structural configuration errors
        """
        context = cls(host, declaration_source, config, **kwargs)
        bind = getattr(host, "bind", None)
        if callable(bind):
            bind(context.deliver)
        if start_sweeper:
            context._sweeper.start()
        context._initialized = True
        logger.info("Grantly initialized for %s", context._app_identity)
        return context

    def shutdown(self) -> None:
        """Cancel every outstanding request and stop background work."""
        if not self._initialized:
            return
        self._initialized = False
        self._sweeper.stop()
        cancelled = self._orchestrator.shutdown()
        self._dispatcher.clear()
        logger.info("Grantly shut down (%d requests cancelled)", cancelled)

    def __enter__(self) -> "GrantlyContext":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def _validated(self, config: GrantlyConfig) -> GrantlyConfig:
        try:
            config.validate()
            return config
        except InvalidConfigurationError as exc:
            decision = self._recovery.handle(exc)
            if decision.action != RecoveryAction.RECOVERED_WITH_DEFAULTS:
                raise
            logger.warning("Using default UI configuration: %s", exc.issue)
            repaired = config.with_cosmetic_defaults()
            repaired.validate()
            return repaired

    def _require(self) -> None:
        if not self._initialized:
            raise NotInitializedError()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> GrantlyConfig:
        return self._config

    @property
    def app_identity(self) -> str:
        return self._app_identity

    @property
    def orchestrator(self) -> RequestOrchestrator:
        self._require()
        return self._orchestrator

    @property
    def checker(self) -> CapabilityStateChecker:
        self._require()
        return self._checker

    @property
    def router(self) -> SpecialCapabilityRouter:
        self._require()
        return self._router

    @property
    def gate(self) -> IsolationGate:
        self._require()
        return self._gate

    @property
    def declarations(self) -> DeclarationValidator:
        self._require()
        return self._declarations

    @property
    def recovery(self) -> ErrorRecoveryManager:
        self._require()
        return self._recovery

    @property
    def providers(self) -> UIProviders:
        return self._providers

    def set_owner_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Deliver callbacks on ``loop`` (default: the running loop)."""
        self._dispatcher.set_owner_loop(loop or asyncio.get_running_loop())

    # Caller-facing API

    def request(self, surface: Any) -> PermissionRequest:
        """Start building a request owned by ``surface``."""
        self._require()
        return PermissionRequest(self._orchestrator, surface, self._config)

    def submit(self, descriptor: RequestDescriptor) -> Result:
        self._require()
        return self._orchestrator.submit(descriptor)

    def deliver(self, grants: Mapping[str, bool], request_id: Optional[str] = None) -> bool:
        """Host answer entry point; answers after shutdown are dropped."""
        if not self._initialized:
            logger.debug("Dropping host answer after shutdown")
            return False
        return self._orchestrator.deliver(grants, request_id)

    def cancel(self, request_id: str, notify: bool = False) -> bool:
        self._require()
        return self._orchestrator.cancel(request_id, notify)

    def cancel_all_for(self, surface: Any) -> int:
        self._require()
        return self._orchestrator.cancel_all_for(surface)

    def check(self, capability: str, surface: Any = None) -> CapabilityResult:
        self._require()
        return self._checker.check(capability, surface)

    def check_all(self, capabilities: List[str], surface: Any = None) -> List[CapabilityResult]:
        self._require()
        return self._checker.check_all(capabilities, surface)

    def is_granted(self, capability: str) -> bool:
        return self.check(capability).is_granted

    def status(self) -> GateStatus:
        self._require()
        return self._gate.status()
