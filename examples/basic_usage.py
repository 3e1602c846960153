"""
Basic usage examples for Grantly.
"""

import asyncio
from typing import List

from grantly import (
    CapabilityResult,
    GrantlyCallback,
    GrantlyContext,
    SimulatedHost,
    StaticDeclarationSource,
    UIProviders,
    create_custom_timing,
)

APP = "com.example.camera"


class PrintingCallback(GrantlyCallback):
    """Prints each outcome group."""

    def on_granted(self, results: List[CapabilityResult]) -> None:
        print(f"  granted: {[r.capability for r in results]}")

    def on_denied(self, results: List[CapabilityResult]) -> None:
        print(f"  denied: {[(r.capability, r.state.value) for r in results]}")

    def on_permanently_denied(self, results: List[CapabilityResult]) -> None:
        print(f"  permanently denied: {[r.capability for r in results]}")

    def on_error(self, error: Exception) -> None:
        print(f"  error: {error}")


def make_context(host: SimulatedHost) -> GrantlyContext:
    source = StaticDeclarationSource(
        {APP: ["camera", "record-audio", "fine-location", "background-location", "overlay"]}
    )
    return GrantlyContext.init(
        host,
        source,
        timing=create_custom_timing(min_request_interval=0.0),
        providers=UIProviders.headless(),
    )


async def example_standard_prompt():
    """
    Example: Camera plus microphone through the standard prompt.
    """
    print("\n" + "=" * 60)
    print("Example 1: Standard Prompt")
    print("=" * 60)

    host = SimulatedHost(identity=APP, granted={"camera"})
    with make_context(host) as context:
        context.set_owner_loop()
        context.request(object()).capabilities("camera", "record-audio").callback(
            PrintingCallback()
        ).execute()
        host.answer_next({"record-audio": True})
        await asyncio.sleep(0)


async def example_background_location():
    """
    Example: Background location needs foreground location first.
    """
    print("\n" + "=" * 60)
    print("Example 2: Two-Step Background Location")
    print("=" * 60)

    host = SimulatedHost(identity=APP, answers={"fine-location": True, "background-location": True})
    with make_context(host) as context:
        context.set_owner_loop()
        for step in (1, 2):
            print(f"\nStep {step}")
            context.request(object()).capabilities("background-location").callback(
                PrintingCallback()
            ).execute()
            print(f"  prompted: {host.prompts[-1].capabilities}")
            host.answer_all()
            await asyncio.sleep(0)


async def example_undeclared():
    """
    Example: Requesting an undeclared capability fails before any prompt.
    """
    print("\n" + "=" * 60)
    print("Example 3: Undeclared Capability")
    print("=" * 60)

    host = SimulatedHost(identity=APP)
    with make_context(host) as context:
        result = context.request(object()).capabilities("read-contacts").callback(
            PrintingCallback()
        ).execute()
        print(f"\nResult: {result.error}")
        print(f"\n{result.error.resolution_guidance()}")


async def main():
    """
    Run all examples.
    """
    print("\n🔐 Grantly - Usage Examples\n")

    await example_standard_prompt()
    await example_background_location()
    await example_undeclared()


if __name__ == "__main__":
    asyncio.run(main())
