"""
Pytest configuration and fixtures.
"""

import sys
from dataclasses import replace
from pathlib import Path

import pytest

src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from grantly.config import DEFAULT_TIMING, GrantlyConfig  # noqa: E402
from grantly.context import GrantlyContext  # noqa: E402
from grantly.core.manifest import StaticDeclarationSource  # noqa: E402
from grantly.host.simulated import SimulatedHost  # noqa: E402
from grantly.providers import UIProviders  # noqa: E402

APP = "com.example.app"

DECLARED = [
    "camera",
    "record-audio",
    "fine-location",
    "coarse-location",
    "background-location",
    "write-storage",
    "read-contacts",
    "notifications",
    "overlay",
    "write-settings",
    "install-packages",
    "manage-storage",
]


def pytest_collection_modifyitems(config, items):
    """
    Modify test items to add helpful markers.
    """
    for item in items:
        if "integration" in item.nodeid.lower():
            item.add_marker("integration")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Surface:
    """Owning surface that can be torn down."""

    def __init__(self, name: str = "main"):
        self.name = name
        self.valid = True

    def is_valid(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        return f"Surface({self.name})"


class Recorder:
    """Plain callable callback collecting every delivered result."""

    def __init__(self):
        self.calls = []

    def __call__(self, result):
        self.calls.append(result)

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timing():
    return replace(
        DEFAULT_TIMING,
        min_request_interval=0.0,
        retry_initial_delay=0.0,
        retry_max_delay=0.0,
    )


@pytest.fixture
def host():
    return SimulatedHost(identity=APP, version=33)


@pytest.fixture
def source():
    return StaticDeclarationSource({APP: DECLARED})


@pytest.fixture
def providers():
    return UIProviders.headless()


@pytest.fixture
def config():
    return GrantlyConfig()


@pytest.fixture
def context(host, source, config, timing, providers, clock):
    ctx = GrantlyContext.init(
        host,
        source,
        config=config,
        timing=timing,
        providers=providers,
        clock=clock,
        rand=lambda: 0.0,
        start_sweeper=False,
    )
    yield ctx
    ctx.shutdown()


@pytest.fixture
def surface():
    return Surface()


@pytest.fixture
def recorder():
    return Recorder()
