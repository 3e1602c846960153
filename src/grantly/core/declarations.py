"""
Capability declaration validation with a per-identity cache.
"""

import logging
import threading
import time
from typing import Dict, FrozenSet, Iterable, Optional

from ..exceptions import NotDeclaredError
from ..host.protocol import DeclarationSource

logger = logging.getLogger(__name__)


class DeclarationValidator:
    """
    Confirms requested capabilities were statically declared.

    The declared set is read once per application identity and cached until
    ``invalidate`` is called. Validation is all-or-nothing: either every
    requested capability is declared or a single NotDeclaredError lists all
    missing ones.
    """

    def __init__(
        self,
        source: DeclarationSource,
        app_identity: str,
        manifest_path: str = "grantly.yaml",
    ):
        self._source = source
        self._app_identity = app_identity
        self._manifest_path = manifest_path
        self._cache: Dict[str, FrozenSet[str]] = {}
        self._lock = threading.Lock()

    @property
    def app_identity(self) -> str:
        return self._app_identity

    def declared(self, app_identity: Optional[str] = None) -> FrozenSet[str]:
        """
        Get the declared capability set for an application identity.

        Args:
            app_identity: Identity to look up; defaults to the engine's own

        Returns:
            Immutable set of declared capability identifiers
        """
        identity = app_identity or self._app_identity
        cached = self._cache.get(identity)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._cache.get(identity)
            if cached is not None:
                return cached
            start = time.perf_counter()
            declared = frozenset(
                c for c in self._source.declared_capabilities(identity) if c
            )
            self._cache[identity] = declared
            logger.debug(
                "Loaded %d declared capabilities for %s in %.1fms",
                len(declared),
                identity,
                (time.perf_counter() - start) * 1000,
            )
            if not declared:
                logger.warning("No capabilities declared for %s", identity)
            return declared

    def is_declared(self, capability: str) -> bool:
        if not capability or not capability.strip():
            return False
        return capability in self.declared()

    def missing(self, requested: Iterable[str]) -> list:
        """Requested capabilities absent from the declared set, in request order."""
        declared = self.declared()
        seen = set()
        result = []
        for capability in requested:
            if capability in seen:
                continue
            seen.add(capability)
            if capability not in declared:
                result.append(capability)
        return result

    def validate(self, requested: Iterable[str]) -> None:
        """
        Check that every requested capability is declared.

        Raises:
            NotDeclaredError: listing every missing capability
        """
        missing = self.missing(requested)
        if missing:
            raise NotDeclaredError(missing, manifest_path=self._manifest_path)

    def invalidate(self, app_identity: Optional[str] = None) -> None:
        """Drop the cached declarations for one identity, or all of them."""
        with self._lock:
            if app_identity is None:
                self._cache.clear()
            else:
                self._cache.pop(app_identity, None)
