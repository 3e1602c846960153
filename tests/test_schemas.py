"""
Tests for result schemas, navigation targets and request descriptors.
"""

import pytest
from pydantic import ValidationError

from grantly.schemas import (
    CapabilityResult,
    CapabilityState,
    Err,
    NavigationTarget,
    Ok,
    RequestDescriptor,
    RequestPhase,
    RoutingKind,
    RoutingOutcome,
)
from grantly.exceptions import NotDeclaredError


class TestCapabilityResult:
    def test_state_properties(self):
        result = CapabilityResult(capability="camera", state=CapabilityState.GRANTED)
        assert result.is_granted
        assert not result.is_denied
        assert result.requires_rationale is False
        assert result.timestamp > 0

    def test_is_immutable(self):
        result = CapabilityResult(capability="camera", state=CapabilityState.DENIED)
        with pytest.raises(ValidationError):
            result.state = CapabilityState.GRANTED


class TestNavigationTarget:
    def test_for_app_scopes_to_identity(self):
        target = NavigationTarget.for_app("manage-overlay", "com.example.app")
        assert target.scope == "package:com.example.app"
        assert target.app_identity == "com.example.app"

    @pytest.mark.parametrize(
        "scope",
        ["com.example.app", "package:", "package:*", "package:com.*", "package:a/b"],
    )
    def test_rejects_unscoped_targets(self, scope):
        with pytest.raises(ValidationError):
            NavigationTarget(action="manage-overlay", scope=scope)


class TestRoutingOutcome:
    def test_deferred_when_prompting_prerequisite(self):
        outcome = RoutingOutcome(
            capability="background-location",
            kind=RoutingKind.ISSUED_STANDARD_PROMPT,
            prompt_capabilities=("fine-location",),
        )
        assert outcome.deferred

    def test_not_deferred_when_prompting_itself(self):
        outcome = RoutingOutcome(
            capability="background-location",
            kind=RoutingKind.ISSUED_STANDARD_PROMPT,
            prompt_capabilities=("background-location",),
        )
        assert not outcome.deferred


class TestResult:
    def test_ok_unwrap_and_map(self):
        result = Ok(2)
        assert result.is_ok and not result.is_err
        assert result.map(lambda v: v * 3).unwrap() == 6

    def test_err_unwrap_raises(self):
        result = Err(NotDeclaredError(["nfc"]))
        assert result.is_err
        assert result.map(lambda v: v) is result
        with pytest.raises(NotDeclaredError):
            result.unwrap()


class TestRequestDescriptor:
    def test_capabilities_copied_into_tuple(self):
        requested = ["camera", "record-audio"]
        descriptor = RequestDescriptor.create(object(), requested, callback=print)
        requested.append("read-contacts")
        assert descriptor.capabilities == ("camera", "record-audio")

    def test_duplicates_dropped_in_order(self):
        descriptor = RequestDescriptor.create(
            object(), ["camera", "record-audio", "camera"], callback=print
        )
        assert descriptor.capabilities == ("camera", "record-audio")

    def test_completed_is_terminal(self):
        descriptor = RequestDescriptor.create(object(), ["camera"], callback=print)
        descriptor.mark_completed()
        descriptor.advance(RequestPhase.AWAITING_HOST)
        assert descriptor.phase == RequestPhase.COMPLETED
        assert not descriptor.is_active

    def test_mark_inactive_cancels(self):
        descriptor = RequestDescriptor.create(object(), ["camera"], callback=print)
        descriptor.mark_inactive()
        assert descriptor.phase == RequestPhase.CANCELLED
        assert not descriptor.is_active
        assert not descriptor.is_completed

    def test_unique_ids(self):
        first = RequestDescriptor.create(object(), ["camera"])
        second = RequestDescriptor.create(object(), ["camera"])
        assert first.request_id != second.request_id
