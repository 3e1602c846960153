"""
Tests for the engine context lifecycle and configuration handling.
"""

import pytest

from grantly.config import DenialBehavior, GrantlyConfig
from grantly.context import GrantlyContext
from grantly.exceptions import InvalidConfigurationError, NotInitializedError
from grantly.schemas import CapabilityState

from conftest import APP, Surface


def make_context(host, source, timing, providers, **kwargs):
    return GrantlyContext.init(
        host, source, timing=timing, providers=providers, start_sweeper=False, **kwargs
    )


class TestLifecycle:
    def test_init_binds_host(self, context, host):
        assert context.is_initialized
        assert context.app_identity == APP
        host.grant("camera")
        assert context.is_granted("camera")

    def test_shutdown_cancels_outstanding(self, context, host, surface, recorder):
        context.request(surface).capabilities("camera").callback(recorder).execute()
        orchestrator = context.orchestrator

        context.shutdown()
        assert not context.is_initialized
        assert not orchestrator.has_active_requests()
        assert context.deliver({"camera": True}) is False
        assert host.answer_next({"camera": True}) is False
        assert recorder.calls == []

    def test_use_after_shutdown(self, context, surface):
        context.shutdown()
        with pytest.raises(NotInitializedError):
            context.request(surface)
        with pytest.raises(NotInitializedError):
            context.check("camera")

    def test_shutdown_twice(self, context):
        context.shutdown()
        context.shutdown()

    def test_context_manager(self, host, source, timing, providers):
        with make_context(host, source, timing, providers) as ctx:
            assert ctx.is_initialized
        assert not ctx.is_initialized

    def test_sweeper_started_and_stopped(self, host, source, timing, providers):
        ctx = GrantlyContext.init(host, source, timing=timing, providers=providers)
        assert ctx._sweeper.running
        ctx.shutdown()
        assert not ctx._sweeper.running


class TestConfiguration:
    def test_cosmetic_problem_repaired(self, host, source, timing, providers):
        ctx = make_context(
            host, source, timing, providers, config=GrantlyConfig(dialog_theme=-1, toast_theme=-3)
        )
        assert ctx.config.dialog_theme == 0
        assert ctx.config.toast_theme == 0
        ctx.shutdown()

    def test_structural_problem_raises(self, host, source, timing, providers):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            make_context(
                host, source, timing, providers, config=GrantlyConfig(default_rationale_title=" ")
            )
        assert not exc_info.value.cosmetic

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GRANTLY_LAZY", "true")
        monkeypatch.setenv("GRANTLY_DENIAL_BEHAVIOR", "disable_feature")
        monkeypatch.setenv("GRANTLY_DIALOG_THEME", "2")
        monkeypatch.setenv("GRANTLY_SHOW_TOASTS", "no")

        config = GrantlyConfig.from_env(dotenv=False)
        assert config.default_lazy is True
        assert config.default_denial_behavior == DenialBehavior.DISABLE_FEATURE
        assert config.dialog_theme == 2
        assert config.show_toasts is False

    def test_from_env_unknown_behavior(self, monkeypatch):
        monkeypatch.setenv("GRANTLY_DENIAL_BEHAVIOR", "explode")
        with pytest.raises(InvalidConfigurationError):
            GrantlyConfig.from_env(dotenv=False)

    def test_from_env_bad_theme_is_cosmetic(self, monkeypatch):
        monkeypatch.setenv("GRANTLY_TOAST_THEME", "dark")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            GrantlyConfig.from_env(dotenv=False)
        assert exc_info.value.cosmetic

    def test_builder_uses_config_defaults(self, host, source, timing, providers, recorder):
        ctx = make_context(
            host, source, timing, providers, config=GrantlyConfig(default_lazy=True)
        )
        deferred = ctx.request(Surface()).capabilities("camera").callback(recorder).execute()
        assert not deferred.has_run
        ctx.shutdown()


class TestQueries:
    def test_check_all(self, context, host):
        host.grant("camera")
        results = context.check_all(["camera", "nfc"])
        assert [r.state for r in results] == [
            CapabilityState.GRANTED,
            CapabilityState.NOT_DECLARED,
        ]

    def test_status(self, context, surface, recorder):
        context.request(surface).capabilities("camera").callback(recorder).execute()
        status = context.status()
        assert status.app_identity == APP
        assert status.in_flight == 1
        assert not status.in_recovery
