"""
Capability identifiers and the version-gated special-capability table.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..host.protocol import PlatformVersion

CAMERA = "camera"
RECORD_AUDIO = "record-audio"
FINE_LOCATION = "fine-location"
COARSE_LOCATION = "coarse-location"
BACKGROUND_LOCATION = "background-location"
READ_STORAGE = "read-storage"
WRITE_STORAGE = "write-storage"
READ_CONTACTS = "read-contacts"
NOTIFICATIONS = "notifications"
OVERLAY = "overlay"
WRITE_SETTINGS = "write-settings"
INSTALL_PACKAGES = "install-packages"
MANAGE_STORAGE = "manage-storage"

FOREGROUND_LOCATION = (FINE_LOCATION, COARSE_LOCATION)

# Settings surfaces
ACTION_MANAGE_OVERLAY = "manage-overlay"
ACTION_MANAGE_WRITE_SETTINGS = "manage-write-settings"
ACTION_MANAGE_UNKNOWN_SOURCES = "manage-unknown-app-sources"
ACTION_MANAGE_ALL_FILES = "manage-all-files-access"
ACTION_APP_DETAILS = "app-details"


@dataclass(frozen=True)
class SpecialCapability:
    """
    How one special capability behaves across platform versions.

    Attributes:
        capability: Capability identifier
        special_from: First platform version at which the capability is special
            (None means special on every version)
        flow_from: First version at which the out-of-band flow exists; below it
            the ``legacy`` rule applies
        settings_action: Settings surface for out-of-band grants, None when the
            capability uses the standard prompt flow
        legacy: Behavior below ``flow_from``: "install" (granted at install time
            if declared), "fallback" (standard grant of ``legacy_capability``) or
            "foreground" (granted with any foreground location grant)
        legacy_capability: Standard capability used by the "fallback" rule
    """

    capability: str
    special_from: Optional[int]
    flow_from: int
    settings_action: Optional[str]
    legacy: str = "install"
    legacy_capability: Optional[str] = None


SPECIAL_CAPABILITIES: Dict[str, SpecialCapability] = {
    OVERLAY: SpecialCapability(
        OVERLAY,
        special_from=None,
        flow_from=PlatformVersion.RUNTIME_PROMPTS,
        settings_action=ACTION_MANAGE_OVERLAY,
    ),
    WRITE_SETTINGS: SpecialCapability(
        WRITE_SETTINGS,
        special_from=None,
        flow_from=PlatformVersion.RUNTIME_PROMPTS,
        settings_action=ACTION_MANAGE_WRITE_SETTINGS,
    ),
    INSTALL_PACKAGES: SpecialCapability(
        INSTALL_PACKAGES,
        special_from=None,
        flow_from=PlatformVersion.UNKNOWN_SOURCES,
        settings_action=ACTION_MANAGE_UNKNOWN_SOURCES,
    ),
    MANAGE_STORAGE: SpecialCapability(
        MANAGE_STORAGE,
        special_from=None,
        flow_from=PlatformVersion.ALL_FILES_ACCESS,
        settings_action=ACTION_MANAGE_ALL_FILES,
        legacy="fallback",
        legacy_capability=WRITE_STORAGE,
    ),
    BACKGROUND_LOCATION: SpecialCapability(
        BACKGROUND_LOCATION,
        special_from=PlatformVersion.BACKGROUND_LOCATION,
        flow_from=PlatformVersion.BACKGROUND_LOCATION,
        settings_action=None,
        legacy="foreground",
    ),
    NOTIFICATIONS: SpecialCapability(
        NOTIFICATIONS,
        special_from=PlatformVersion.NOTIFICATIONS,
        flow_from=PlatformVersion.NOTIFICATIONS,
        settings_action=None,
    ),
}


def special_spec(capability: str) -> Optional[SpecialCapability]:
    """Look up the special-capability rule for an identifier."""
    return SPECIAL_CAPABILITIES.get(capability)


def is_special(capability: str, version: int) -> bool:
    """Whether a capability needs out-of-band handling on a platform version."""
    spec = SPECIAL_CAPABILITIES.get(capability)
    if spec is None:
        return False
    return spec.special_from is None or version >= spec.special_from


def display_name(capability: str) -> str:
    """Human-friendly name for a capability identifier."""
    if not capability or not capability.strip():
        return "Unknown Capability"
    return capability.replace("-", " ").replace("_", " ").strip().lower()

