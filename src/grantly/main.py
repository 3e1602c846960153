"""
Command line entry point: inspect or simulate capability requests from a
YAML scenario.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

from rich.table import Table

from .config.grantly_config import GrantlyConfig
from .config.timing_config import create_custom_timing
from .context import GrantlyContext
from .core.manifest import ManifestDeclarationSource, load_manifest
from .exceptions import GrantlyError
from .host.simulated import SimulatedHost
from .providers import UIProviders
from .schemas.result import Err, Ok
from .utils.logging import setup_logging
from .utils.ui import THEME, console, state_label

setup_logging(verbose=False)


class _Surface:
    """Stand-in owning surface for one scenario request."""

    def __init__(self, index: int):
        self.index = index

    def is_valid(self) -> bool:
        return True


def load_scenario(path: Path) -> Dict[str, Any]:
    """
    Read a scenario file.

    Layout::

        app: com.example.app
        capabilities: [camera, fine-location]
        host: {version: 33, granted: [camera], rationale: []}
        answers: {fine-location: true}
        requests:
          - capabilities: [camera, fine-location]
    """
    data = load_manifest(path)
    host = dict(data.get("host") or {})
    host.setdefault("identity", data.get("app") or "com.example.app")
    data["host"] = host
    data["answers"] = dict(data.get("answers") or {})
    data["requests"] = list(data.get("requests") or [])
    return data


def _build_context(path: Path, scenario: Dict[str, Any], verbose: bool) -> Tuple[GrantlyContext, SimulatedHost]:
    host = SimulatedHost.from_mapping(scenario["host"])
    host.answers.update({str(k): bool(v) for k, v in scenario["answers"].items()})
    context = GrantlyContext.init(
        host,
        ManifestDeclarationSource(path),
        config=GrantlyConfig(enable_logging=verbose, show_toasts=False),
        timing=create_custom_timing(min_request_interval=0.0),
        providers=UIProviders.headless(),
        manifest_path=str(path),
        start_sweeper=False,
    )
    return context, host


def _results_table(title: str) -> Table:
    table = Table(title=title, title_style=f"bold {THEME['header']}", border_style=THEME["border"])
    table.add_column("Capability", style=THEME["text"])
    table.add_column("State")
    table.add_column("Rationale", style=THEME["muted"])
    return table


def run_check(path: Path, verbose: bool = False) -> int:
    """Print the current state of every declared capability."""
    scenario = load_scenario(path)
    context, _ = _build_context(path, scenario, verbose)
    try:
        table = _results_table(f"{context.app_identity} (platform {scenario['host'].get('version', 33)})")
        for result in context.check_all(scenario.get("capabilities", [])):
            table.add_row(
                result.capability,
                state_label(result.state.value),
                "yes" if result.requires_rationale else "",
            )
        console.print(table)
    finally:
        context.shutdown()
    return 0


async def simulate(path: Path, verbose: bool = False) -> int:
    """Run each scenario request against the simulated host."""
    scenario = load_scenario(path)
    context, host = _build_context(path, scenario, verbose)
    context.set_owner_loop()
    failures = 0

    try:
        for index, request in enumerate(scenario["requests"], start=1):
            capabilities: List[str] = [str(c) for c in request.get("capabilities") or []]
            delivered: List[Any] = []

            outcome = (
                context.request(_Surface(index))
                .capabilities(*capabilities)
                .lazy(bool(request.get("lazy", False)))
                .callback(delivered.append)
                .execute()
            )
            if hasattr(outcome, "run"):
                outcome = outcome.run()

            if isinstance(outcome, Err):
                failures += 1
                console.print(f"[{THEME['error']}]✗ Request {index}: {outcome.error}[/]")
                continue

            host.answer_all()
            await asyncio.sleep(0)

            for item in delivered:
                if isinstance(item, Ok):
                    table = _results_table(f"Request {index}: {', '.join(capabilities)}")
                    for result in item.value:
                        table.add_row(
                            result.capability,
                            state_label(result.state.value),
                            "yes" if result.requires_rationale else "",
                        )
                    console.print(table)
                else:
                    failures += 1
                    console.print(f"[{THEME['error']}]✗ Request {index}: {item.error}[/]")

            for navigation in host.navigations:
                console.print(
                    f"  [{THEME['muted']}]→ settings[/] {navigation.target.action} "
                    f"[{THEME['muted']}]({navigation.target.scope})[/]"
                )
            host.navigations.clear()
    finally:
        context.shutdown()

    return 1 if failures else 0


def cli():
    """CLI entry point with argument parsing."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="grantly",
        description="Grantly - capability request orchestration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output with detailed logs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Show the state of declared capabilities")
    check_parser.add_argument("scenario", type=Path, help="Scenario YAML file")

    simulate_parser = subparsers.add_parser("simulate", help="Run scenario requests")
    simulate_parser.add_argument("scenario", type=Path, help="Scenario YAML file")

    args = parser.parse_args()

    if args.verbose:
        setup_logging(verbose=True)

    try:
        if args.command == "check":
            code = run_check(args.scenario, args.verbose)
        else:
            code = asyncio.run(simulate(args.scenario, args.verbose))
    except GrantlyError as exc:
        console.print(f"[{THEME['error']}]{exc}[/]")
        code = 2
    except KeyboardInterrupt:
        console.print(f"\n\n  [{THEME['muted']}]Goodbye[/]")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    cli()
