"""
Tests for the scenario command line.
"""

import sys

import pytest

from grantly.main import cli, load_scenario, run_check, simulate

SCENARIO = """\
app: com.example.app
capabilities:
  - camera
  - record-audio
  - fine-location
  - background-location
  - overlay
host:
  version: 33
  granted: [camera]
answers:
  fine-location: true
  record-audio: false
requests:
  - capabilities: [camera, record-audio]
  - capabilities: [background-location]
  - capabilities: [overlay]
    lazy: true
"""


@pytest.fixture
def scenario(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text(SCENARIO, encoding="utf-8")
    return path


def test_load_scenario_defaults(tmp_path):
    path = tmp_path / "bare.yaml"
    path.write_text("app: com.example.other\ncapabilities: [camera]\n", encoding="utf-8")

    data = load_scenario(path)
    assert data["host"]["identity"] == "com.example.other"
    assert data["answers"] == {}
    assert data["requests"] == []


def test_check_command(scenario):
    assert run_check(scenario) == 0


@pytest.mark.asyncio
async def test_simulate_command(scenario):
    assert await simulate(scenario) == 0


@pytest.mark.asyncio
async def test_simulate_reports_undeclared(tmp_path):
    path = tmp_path / "undeclared.yaml"
    path.write_text(
        "app: com.example.app\ncapabilities: [camera]\nrequests:\n  - capabilities: [nfc]\n",
        encoding="utf-8",
    )
    assert await simulate(path) == 1


def test_cli_missing_manifest(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["grantly", "check", str(tmp_path / "missing.yaml")])
    with pytest.raises(SystemExit) as exc_info:
        cli()
    assert exc_info.value.code == 2


def test_cli_check(scenario, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["grantly", "check", str(scenario)])
    with pytest.raises(SystemExit) as exc_info:
        cli()
    assert exc_info.value.code == 0
