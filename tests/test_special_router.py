"""
Tests for special-capability routing and scoped settings navigation.
"""

import pytest

from grantly.core.checker import CapabilityStateChecker, RequestHistory
from grantly.core.declarations import DeclarationValidator
from grantly.core.manifest import StaticDeclarationSource
from grantly.core.special import SpecialCapabilityRouter
from grantly.exceptions import InvalidConfigurationError
from grantly.host.simulated import SimulatedHost
from grantly.schemas import RoutingKind

from conftest import APP, DECLARED


def make_router(version=33, granted=(), declared=DECLARED, identity=APP):
    host = SimulatedHost(identity=APP, version=version, granted=set(granted))
    declarations = DeclarationValidator(StaticDeclarationSource({APP: declared}), APP)
    checker = CapabilityStateChecker(host, declarations, RequestHistory())
    return SpecialCapabilityRouter(host, checker, declarations, identity), host


class TestSettingsNavigation:
    @pytest.mark.parametrize(
        "capability,action",
        [
            ("overlay", "manage-overlay"),
            ("write-settings", "manage-write-settings"),
            ("install-packages", "manage-unknown-app-sources"),
            ("manage-storage", "manage-all-files-access"),
        ],
    )
    def test_navigation_scoped_to_own_app(self, capability, action):
        router, host = make_router()
        outcome = router.route(capability)
        assert outcome.kind == RoutingKind.NAVIGATED_TO_SETTINGS
        assert outcome.navigation.action == action
        assert outcome.navigation.scope == f"package:{APP}"
        assert [n.target.scope for n in host.navigations] == [f"package:{APP}"]

    def test_already_granted_skips_navigation(self):
        router, host = make_router(granted=["overlay"])
        assert router.route("overlay").kind == RoutingKind.ALREADY_GRANTED
        assert host.navigations == []

    def test_install_time_grant_on_old_platform(self):
        router, host = make_router(version=22)
        assert router.route("write-settings").kind == RoutingKind.ALREADY_GRANTED
        assert host.navigations == []
        assert router.navigation_target("write-settings") is None

    def test_identity_mismatch_refuses_navigation(self):
        router, host = make_router()
        host.reported_identity = "com.other.app"
        with pytest.raises(InvalidConfigurationError):
            router.route("overlay")
        assert host.navigations == []

    def test_open_app_settings(self):
        router, host = make_router()
        target = router.open_app_settings("camera")
        assert target.action == "app-details"
        assert host.navigations[0].target == target


class TestBackgroundLocation:
    def test_prompts_prerequisite_first(self):
        router, _ = make_router()
        outcome = router.route("background-location")
        assert outcome.kind == RoutingKind.ISSUED_STANDARD_PROMPT
        assert outcome.prompt_capabilities == ("fine-location",)
        assert outcome.deferred

    def test_uses_coarse_when_fine_not_declared(self):
        declared = [c for c in DECLARED if c != "fine-location"]
        router, _ = make_router(declared=declared)
        assert router.route("background-location").prompt_capabilities == ("coarse-location",)

    def test_prompts_itself_once_prerequisite_held(self):
        router, _ = make_router(granted=["coarse-location"])
        outcome = router.route("background-location")
        assert outcome.prompt_capabilities == ("background-location",)
        assert not outcome.deferred

    def test_legacy_platform_follows_foreground(self):
        router, _ = make_router(version=28, granted=["fine-location"])
        assert router.route("background-location").kind == RoutingKind.ALREADY_GRANTED


class TestLegacyFallback:
    def test_manage_storage_prompts_write_storage_before_30(self):
        router, _ = make_router(version=29)
        outcome = router.route("manage-storage")
        assert outcome.kind == RoutingKind.ISSUED_STANDARD_PROMPT
        assert outcome.prompt_capabilities == ("write-storage",)

    def test_notifications_standard_prompt_from_33(self):
        router, _ = make_router(version=33)
        outcome = router.route("notifications")
        assert outcome.prompt_capabilities == ("notifications",)

    def test_notifications_install_time_before_33(self):
        router, _ = make_router(version=32)
        assert router.route("notifications").kind == RoutingKind.ALREADY_GRANTED
