"""
Tests for the fluent request builder and deferred (lazy) requests.
"""

from unittest.mock import Mock

import pytest

from grantly.config import DenialBehavior, GrantlyConfig
from grantly.core.request_builder import DeferredRequest, PermissionRequest
from grantly.exceptions import InvalidConfigurationError
from grantly.providers import StaticRationaleProvider
from grantly.schemas import Err, Ok

from conftest import Recorder, Surface


@pytest.fixture
def orchestrator():
    mock = Mock()
    mock.submit.side_effect = lambda descriptor: Ok(descriptor.request_id)
    return mock


class TestBuilderOptions:
    def test_build_snapshots_options(self, orchestrator):
        surface = Surface()
        callback = Recorder()
        descriptor = (
            PermissionRequest(orchestrator, surface)
            .capabilities("camera", "camera", "record-audio")
            .add_capabilities("record-audio", "fine-location")
            .rationale("Camera", "Needed to scan documents")
            .denial_behavior(DenialBehavior.DISABLE_FEATURE)
            .continue_on_denied(False)
            .callback(callback)
            .build()
        )

        assert descriptor.surface is surface
        assert descriptor.capabilities == ("camera", "record-audio", "fine-location")
        assert descriptor.rationale_title == "Camera"
        assert descriptor.denial_behavior == DenialBehavior.DISABLE_FEATURE
        assert descriptor.continue_on_denied is False
        assert descriptor.callback is callback

    def test_config_defaults(self, orchestrator):
        config = GrantlyConfig(
            default_lazy=True, default_denial_behavior=DenialBehavior.EXIT_APP_IMMEDIATELY
        )
        descriptor = PermissionRequest(orchestrator, Surface(), config).capabilities("camera").build()
        assert descriptor.lazy is True
        assert descriptor.denial_behavior == DenialBehavior.EXIT_APP_IMMEDIATELY

    def test_empty_capabilities_rejected(self, orchestrator):
        with pytest.raises(InvalidConfigurationError):
            PermissionRequest(orchestrator, Surface()).capabilities()

    def test_null_callback_rejected(self, orchestrator):
        with pytest.raises(InvalidConfigurationError, match="Callback"):
            PermissionRequest(orchestrator, Surface()).callback(None)

    def test_rationale_conflicts_with_provider(self, orchestrator):
        request = PermissionRequest(orchestrator, Surface()).rationale("T", "M")
        with pytest.raises(InvalidConfigurationError):
            request.rationale_provider(StaticRationaleProvider())

        request = PermissionRequest(orchestrator, Surface()).rationale_provider(
            StaticRationaleProvider()
        )
        with pytest.raises(InvalidConfigurationError):
            request.rationale("T", "M")

    def test_unknown_denial_behavior(self, orchestrator):
        with pytest.raises(InvalidConfigurationError):
            PermissionRequest(orchestrator, Surface()).denial_behavior("quit")


class TestExecute:
    def test_eager_request_submitted(self, orchestrator):
        result = (
            PermissionRequest(orchestrator, Surface())
            .capabilities("camera")
            .callback(Recorder())
            .execute()
        )
        assert isinstance(result, Ok)
        orchestrator.submit.assert_called_once()

    def test_missing_callback_is_err(self, orchestrator):
        result = PermissionRequest(orchestrator, Surface()).capabilities("camera").execute()
        assert isinstance(result, Err)
        orchestrator.submit.assert_not_called()

    def test_missing_capabilities_is_err(self, orchestrator):
        result = PermissionRequest(orchestrator, Surface()).callback(Recorder()).execute()
        assert isinstance(result, Err)

    def test_builder_frozen_after_execute(self, orchestrator):
        request = PermissionRequest(orchestrator, Surface()).capabilities("camera").callback(Recorder())
        request.execute()

        assert request.is_executed
        with pytest.raises(InvalidConfigurationError):
            request.add_capabilities("record-audio")
        with pytest.raises(InvalidConfigurationError):
            request.execute()
        assert orchestrator.submit.call_count == 1


class TestDeferredRequest:
    def test_lazy_request_waits_for_run(self, orchestrator):
        deferred = (
            PermissionRequest(orchestrator, Surface())
            .capabilities("camera")
            .lazy()
            .callback(Recorder())
            .execute()
        )
        assert isinstance(deferred, DeferredRequest)
        assert not deferred.has_run
        orchestrator.submit.assert_not_called()

        first = deferred.run()
        second = deferred.run()
        assert first is second
        assert deferred.has_run
        orchestrator.submit.assert_called_once_with(deferred.descriptor)

    def test_deferred_request_against_engine(self, context, host, recorder):
        deferred = context.request(Surface()).capabilities("camera").lazy().callback(recorder).execute()
        assert host.prompts == []

        assert deferred.run().is_ok
        assert host.prompts[0].capabilities == ("camera",)
        host.answer_next({"camera": True})
        assert recorder.last.value[0].is_granted
