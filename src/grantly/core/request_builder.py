"""
Fluent request builder.

A ``PermissionRequest`` collects options, is consumed once by ``execute`` and
hands the orchestrator a plain ``RequestDescriptor``; the descriptor never
refers back to the builder.
"""

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from ..config.grantly_config import DenialBehavior
from ..exceptions import InvalidConfigurationError
from ..schemas.request import RequestDescriptor
from ..schemas.result import Err, Result

if TYPE_CHECKING:
    from .orchestrator import RequestOrchestrator

logger = logging.getLogger(__name__)


class DeferredRequest:
    """
    A lazy request waiting for the dependent feature to be used.

    ``run`` submits the descriptor exactly once; later calls return the
    first result.
    """

    def __init__(self, orchestrator: "RequestOrchestrator", descriptor: RequestDescriptor):
        self._orchestrator = orchestrator
        self._descriptor = descriptor
        self._result: Optional[Result] = None
        self._lock = threading.Lock()

    @property
    def descriptor(self) -> RequestDescriptor:
        return self._descriptor

    @property
    def has_run(self) -> bool:
        return self._result is not None

    def run(self) -> Result:
        with self._lock:
            if self._result is None:
                logger.debug("Running deferred request %s", self._descriptor.request_id)
                self._result = self._orchestrator.submit(self._descriptor)
            return self._result


class PermissionRequest:
    """
    Builder for one capability request.

    Example:
        >>> PermissionRequest(orchestrator, surface, config) \\
        ...     .capabilities("camera", "record-audio") \\
        ...     .rationale("Camera", "Needed to scan documents") \\
        ...     .callback(on_result) \\
        ...     .execute()
    """

    def __init__(self, orchestrator: "RequestOrchestrator", surface: Any, config: Any = None):
        self._orchestrator = orchestrator
        self._surface = surface
        self._capabilities: List[str] = []
        self._callback: Optional[Callable[..., Any]] = None
        self._lazy: bool = bool(getattr(config, "default_lazy", False))
        self._denial_behavior: Optional[DenialBehavior] = getattr(
            config, "default_denial_behavior", None
        )
        self._rationale_title: Optional[str] = None
        self._rationale_message: Optional[str] = None
        self._rationale_provider: Any = None
        self._dialog_provider: Any = None
        self._continue_on_denied = True
        self._executed = False

    def _ensure_not_executed(self) -> None:
        if self._executed:
            raise InvalidConfigurationError.conflicting_configuration(
                "request has already been executed and cannot be modified"
            )

    def capabilities(self, *capabilities: str) -> "PermissionRequest":
        """Replace the requested capabilities."""
        self._ensure_not_executed()
        if not capabilities:
            raise InvalidConfigurationError.empty_capabilities()
        self._capabilities = list(dict.fromkeys(capabilities))
        return self

    def add_capabilities(self, *capabilities: str) -> "PermissionRequest":
        self._ensure_not_executed()
        if not capabilities:
            raise InvalidConfigurationError.empty_capabilities()
        for capability in capabilities:
            if capability not in self._capabilities:
                self._capabilities.append(capability)
        return self

    def lazy(self, lazy: bool = True) -> "PermissionRequest":
        self._ensure_not_executed()
        self._lazy = lazy
        return self

    def rationale(self, title: str, message: str) -> "PermissionRequest":
        self._ensure_not_executed()
        if self._rationale_provider is not None:
            raise InvalidConfigurationError.conflicting_configuration(
                "rationale text and a rationale provider cannot both be set"
            )
        self._rationale_title = title
        self._rationale_message = message
        return self

    def rationale_provider(self, provider: Any) -> "PermissionRequest":
        self._ensure_not_executed()
        if self._rationale_message is not None:
            raise InvalidConfigurationError.conflicting_configuration(
                "rationale text and a rationale provider cannot both be set"
            )
        self._rationale_provider = provider
        return self

    def dialog_provider(self, provider: Any) -> "PermissionRequest":
        self._ensure_not_executed()
        self._dialog_provider = provider
        return self

    def continue_on_denied(self, value: bool = True) -> "PermissionRequest":
        self._ensure_not_executed()
        self._continue_on_denied = value
        return self

    def denial_behavior(self, behavior: DenialBehavior) -> "PermissionRequest":
        self._ensure_not_executed()
        if not isinstance(behavior, DenialBehavior):
            raise InvalidConfigurationError(
                f"Unknown denial behavior: {behavior!r}",
                "Use one of the DenialBehavior members",
                cosmetic=False,
            )
        self._denial_behavior = behavior
        return self

    def callback(self, callback: Callable[..., Any]) -> "PermissionRequest":
        self._ensure_not_executed()
        if callback is None:
            raise InvalidConfigurationError.null_callback()
        self._callback = callback
        return self

    @property
    def is_executed(self) -> bool:
        return self._executed

    def build(self) -> RequestDescriptor:
        """Snapshot the builder into a descriptor without submitting it."""
        return RequestDescriptor.create(
            surface=self._surface,
            capabilities=self._capabilities,
            callback=self._callback,
            lazy=self._lazy,
            denial_behavior=self._denial_behavior,
            rationale_title=self._rationale_title,
            rationale_message=self._rationale_message,
            rationale_provider=self._rationale_provider,
            dialog_provider=self._dialog_provider,
            continue_on_denied=self._continue_on_denied,
        )

    def execute(self):
        """
        Consume the builder.

        Returns:
            For an eager request, the orchestrator's ``Ok(request_id)`` or
            ``Err``. For a lazy request, a DeferredRequest to ``run`` later.

        Raises:
            InvalidConfigurationError: if the builder was already executed
        """
        self._ensure_not_executed()
        self._executed = True

        if self._callback is None:
            return Err(InvalidConfigurationError.null_callback())
        if not self._capabilities:
            return Err(InvalidConfigurationError.empty_capabilities())

        descriptor = self.build()
        if self._lazy:
            logger.debug("Deferring lazy request %s", descriptor.request_id)
            return DeferredRequest(self._orchestrator, descriptor)
        return self._orchestrator.submit(descriptor)
