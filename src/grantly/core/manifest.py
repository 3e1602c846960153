"""
Declared-capability sources.

The declaration list is static and read-only; these sources only hand back
the validated identifiers, never interpret them.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

import yaml

from ..exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)


class StaticDeclarationSource:
    """Declarations held in memory, keyed by application identity."""

    def __init__(self, declarations: Mapping[str, Iterable[str]]):
        self._declarations: Dict[str, List[str]] = {
            identity: list(capabilities)
            for identity, capabilities in declarations.items()
        }
        self.reads = 0

    def declared_capabilities(self, app_identity: str) -> List[str]:
        self.reads += 1
        return list(self._declarations.get(app_identity, []))


class ManifestDeclarationSource:
    """
    Declarations read from a YAML manifest.

    Expected layout::

        app: com.example.app
        capabilities:
          - camera
          - fine-location
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def declared_capabilities(self, app_identity: str) -> List[str]:
        data = load_manifest(self.path)
        declared_for = data.get("app")
        if declared_for and declared_for != app_identity:
            logger.warning(
                "Manifest %s declares capabilities for %s, not %s",
                self.path,
                declared_for,
                app_identity,
            )
            return []
        return list(data.get("capabilities", []))


def load_manifest(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and shape-check a capability manifest.

    Raises:
        InvalidConfigurationError: if the file is missing or malformed
    """
    manifest_path = Path(path)
    try:
        with open(manifest_path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise InvalidConfigurationError(
            f"Capability manifest not found: {manifest_path}",
            "Create the manifest or pass the correct path",
            cosmetic=False,
        ) from exc
    except yaml.YAMLError as exc:
        raise InvalidConfigurationError(
            f"Capability manifest is not valid YAML: {manifest_path}",
            "Fix the YAML syntax in the manifest",
            cosmetic=False,
        ) from exc

    if not isinstance(data, dict):
        raise InvalidConfigurationError(
            f"Capability manifest must be a mapping: {manifest_path}",
            "Use 'app:' and 'capabilities:' keys at the top level",
            cosmetic=False,
        )
    capabilities = data.get("capabilities") or []
    if not isinstance(capabilities, list) or not all(
        isinstance(item, str) for item in capabilities
    ):
        raise InvalidConfigurationError(
            f"'capabilities' must be a list of strings in {manifest_path}",
            "List each capability identifier as a plain string",
            cosmetic=False,
        )
    data["capabilities"] = capabilities
    return data
