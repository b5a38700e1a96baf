"""Regression tests for cancellation and timeout edge cases."""

from __future__ import annotations

import asyncio
import gc
import sys
import warnings
from contextlib import contextmanager
from types import SimpleNamespace
from typing import TYPE_CHECKING

import pytest

from gosandbox.utils.concurrency import CancellationToken, run_with_timeout

if TYPE_CHECKING:
    from collections.abc import Iterator


@contextmanager
def _capture_unraisable() -> Iterator[list[SimpleNamespace]]:
    captured: list[SimpleNamespace] = []
    original = sys.unraisablehook

    def hook(unraisable: object) -> None:
        captured.append(
            SimpleNamespace(
                exc_type=getattr(unraisable, "exc_type", None),
                err_msg=getattr(unraisable, "err_msg", None),
            )
        )

    sys.unraisablehook = hook
    try:
        yield captured
    finally:
        sys.unraisablehook = original


async def _slow() -> int:
    await asyncio.sleep(0.01)
    return 1


async def _slower() -> int:
    await asyncio.sleep(0.05)
    return 1


@pytest.mark.unit
async def test_run_with_timeout_returns_value_without_timeout() -> None:
    assert await run_with_timeout(_slow(), None) == 1


@pytest.mark.unit
async def test_early_cancel_closes_the_pending_coroutine() -> None:
    token = CancellationToken()
    token.cancel()

    with _capture_unraisable() as leaked, warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        coro = _slow()
        with pytest.raises(asyncio.CancelledError):
            await run_with_timeout(coro, 1.0, token)
        del coro
        gc.collect()

    assert leaked == []


@pytest.mark.unit
async def test_timeout_closes_the_pending_coroutine() -> None:
    with _capture_unraisable() as leaked, warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        with pytest.raises(TimeoutError):
            await run_with_timeout(_slower(), 0.001, None)
        gc.collect()

    assert leaked == []


@pytest.mark.unit
async def test_cancel_token_fired_mid_run_cancels_the_inner_task() -> None:
    token = CancellationToken()
    started = asyncio.Event()
    inner_cancelled = False

    async def _blocking() -> int:
        nonlocal inner_cancelled
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            inner_cancelled = True
            raise
        return 0

    async def _cancel_when_started() -> None:
        await started.wait()
        token.cancel()

    canceller = asyncio.create_task(_cancel_when_started())
    with pytest.raises(asyncio.CancelledError):
        await run_with_timeout(_blocking(), None, token)
    await canceller

    assert inner_cancelled is True
    assert token.is_cancelled


@pytest.mark.unit
async def test_non_positive_timeout_is_rejected() -> None:
    with pytest.raises(ValueError, match="timeout_seconds"):
        await run_with_timeout(_slow(), 0)


@pytest.mark.unit
def test_raise_if_cancelled() -> None:
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    with pytest.raises(asyncio.CancelledError):
        token.raise_if_cancelled()


@pytest.mark.unit
async def test_first_cancel_reason_is_kept() -> None:
    token = CancellationToken()
    token.cancel("editor closed")
    token.cancel("second call")

    with pytest.raises(asyncio.CancelledError, match="editor closed"):
        await run_with_timeout(_slow(), None, token)
    assert token.reason == "editor closed"
