"""
Result callbacks.

A callback is any callable taking ``Ok(list[CapabilityResult])`` or
``Err(GrantlyError)``. ``GrantlyCallback`` splits the aggregated list into
per-state hooks.
"""

import logging
from typing import Any, Callable, List, Optional, Union

from .schemas.capability import CapabilityResult
from .schemas.result import Err, Ok

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Union[Ok, Err]], Any]


class GrantlyCallback:
    """
    Base callback with one hook per outcome group.

    Override only the hooks you need. ``NotDeclared`` and
    ``RequiresSpecialHandling`` results are reported through ``on_denied``.
    """

    def on_granted(self, results: List[CapabilityResult]) -> None:
        pass

    def on_denied(self, results: List[CapabilityResult]) -> None:
        pass

    def on_permanently_denied(self, results: List[CapabilityResult]) -> None:
        pass

    def on_cancelled(self) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass

    def on_degraded(self, outcome: Any) -> None:
        pass

    def __call__(self, result: Union[Ok, Err]) -> None:
        if result.is_err:
            self.on_error(result.error)
            return

        results: List[CapabilityResult] = list(result.value)
        granted = [r for r in results if r.is_granted]
        permanent = [r for r in results if r.is_permanently_denied]
        denied = [
            r for r in results if not r.is_granted and not r.is_permanently_denied
        ]
        if granted:
            self.on_granted(granted)
        if denied:
            self.on_denied(denied)
        if permanent:
            self.on_permanently_denied(permanent)


def notify_degraded(callback: Optional[Any], outcome: Any) -> None:
    """Pass a degradation outcome to callbacks that accept one."""
    hook = getattr(callback, "on_degraded", None)
    if callable(hook):
        hook(outcome)


def notify_cancelled(callback: Optional[Any]) -> None:
    hook = getattr(callback, "on_cancelled", None)
    if callable(hook):
        hook()
