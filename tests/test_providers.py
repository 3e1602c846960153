"""
Tests for the terminal UI providers and callback grouping.
"""

from unittest.mock import MagicMock, patch

from rich.console import Console

from grantly.callbacks import GrantlyCallback
from grantly.providers import UIProviders
from grantly.providers.console import (
    ConsoleDialogProvider,
    ConsoleRationaleProvider,
    ConsoleToastProvider,
)
from grantly.schemas import CapabilityResult, CapabilityState, Err, Ok
from grantly.utils.ui import state_label


def result(capability, state):
    return CapabilityResult(capability=capability, state=state)


def recording_console():
    return Console(record=True, width=80, force_terminal=False)


class TestConsoleProviders:
    def test_toast_summary(self):
        console = recording_console()
        ConsoleToastProvider(console).show(
            [result("camera", CapabilityState.GRANTED)],
            [result("record-audio", CapabilityState.DENIED)],
            [],
        )
        text = console.export_text()
        assert "1 granted" in text
        assert "1 denied" in text
        assert "permanently" not in text

    def test_rationale_box_and_answer(self):
        console = recording_console()
        prompt = MagicMock()
        prompt.execute.return_value = True
        with patch("grantly.providers.console.inquirer.select", return_value=prompt):
            answer = ConsoleRationaleProvider(console).show(
                ["camera"], "Camera", "Needed to scan documents"
            )
        assert answer is True
        text = console.export_text()
        assert "Camera" in text
        assert "Needed to scan documents" in text

    def test_dialog_interrupt_is_refusal(self):
        prompt = MagicMock()
        prompt.execute.side_effect = KeyboardInterrupt
        with patch("grantly.providers.console.inquirer.select", return_value=prompt):
            assert ConsoleDialogProvider(recording_console()).show(["camera"], "T", "M") is False

    def test_console_bundle(self):
        providers = UIProviders.console()
        assert isinstance(providers.toast, ConsoleToastProvider)


class TestCallbackGrouping:
    def test_groups(self):
        seen = {}

        class Callback(GrantlyCallback):
            def on_granted(self, results):
                seen["granted"] = [r.capability for r in results]

            def on_denied(self, results):
                seen["denied"] = [r.capability for r in results]

            def on_permanently_denied(self, results):
                seen["permanent"] = [r.capability for r in results]

        Callback()(
            Ok(
                [
                    result("camera", CapabilityState.GRANTED),
                    result("nfc", CapabilityState.NOT_DECLARED),
                    result("overlay", CapabilityState.REQUIRES_SPECIAL_HANDLING),
                    result("read-contacts", CapabilityState.PERMANENTLY_DENIED),
                ]
            )
        )
        assert seen == {
            "granted": ["camera"],
            "denied": ["nfc", "overlay"],
            "permanent": ["read-contacts"],
        }

    def test_error_hook(self):
        errors = []

        class Callback(GrantlyCallback):
            def on_error(self, error):
                errors.append(error)

        failure = RuntimeError("boom")
        Callback()(Err(failure))
        assert errors == [failure]


def test_state_label():
    assert "granted" in state_label("granted")
    assert "requires special handling" in state_label("requires_special_handling")
