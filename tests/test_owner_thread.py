"""
Thread-affinity tests for the owner-thread dispatcher.
"""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from grantly.utils.threading import OwnerThreadDispatcher


def test_runs_inline_without_loop() -> None:
    dispatcher = OwnerThreadDispatcher()
    seen = []
    dispatcher.post(seen.append, threading.get_ident())
    assert seen == [threading.get_ident()]


def test_zero_delay_runs_immediately() -> None:
    dispatcher = OwnerThreadDispatcher()
    seen = []
    dispatcher.call_later(0, lambda: seen.append("now"))
    assert seen == ["now"]


def test_delay_without_loop_uses_timer_thread() -> None:
    dispatcher = OwnerThreadDispatcher()
    done = threading.Event()
    dispatcher.call_later(0.01, done.set)
    assert done.wait(1.0)


@pytest.mark.asyncio
async def test_post_from_worker_lands_on_owner_thread() -> None:
    dispatcher = OwnerThreadDispatcher()
    dispatcher.set_owner_loop(asyncio.get_running_loop())
    owner = threading.get_ident()
    landed = asyncio.Event()
    threads = []

    def callback() -> None:
        threads.append(threading.get_ident())
        landed.set()

    await asyncio.get_running_loop().run_in_executor(None, dispatcher.post, callback)
    await asyncio.wait_for(landed.wait(), 1.0)
    assert threads == [owner]


@pytest.mark.asyncio
async def test_call_later_on_owner_loop() -> None:
    dispatcher = OwnerThreadDispatcher(asyncio.get_running_loop())
    landed = asyncio.Event()
    started = time.monotonic()

    def schedule() -> None:
        dispatcher.call_later(0.02, landed.set)

    await asyncio.get_running_loop().run_in_executor(None, schedule)
    await asyncio.wait_for(landed.wait(), 1.0)
    assert time.monotonic() - started >= 0.02


@pytest.mark.asyncio
async def test_engine_callback_delivered_on_owner_thread(context, host, surface) -> None:
    context.set_owner_loop()
    owner = threading.get_ident()
    delivered = asyncio.Event()
    threads = []

    def callback(result) -> None:
        threads.append(threading.get_ident())
        delivered.set()

    context.request(surface).capabilities("camera").callback(callback).execute()
    loop = asyncio.get_running_loop()
    assert await loop.run_in_executor(None, host.answer_next, {"camera": True})
    await asyncio.wait_for(delivered.wait(), 1.0)
    assert threads == [owner]
