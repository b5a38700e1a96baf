"""Cancellation and deadline handling for awaited go subprocesses."""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


class CancellationToken:
    """Caller-owned stop signal, shared between the caller and one or more commands."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Fire the token. The first reason given is kept."""

        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError(self._reason)


async def run_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float | None,
    cancel_token: CancellationToken | None = None,
) -> T:
    """Await ``awaitable`` until it finishes, the deadline passes, or the token fires.

    A deadline raises ``TimeoutError``; a fired token raises
    ``asyncio.CancelledError``. Either way the inner task has already been
    cancelled and awaited, so a subprocess wrapper has killed and reaped its
    child before the error reaches the caller. ``timeout_seconds=None`` means
    no deadline.
    """

    if timeout_seconds is not None and timeout_seconds <= 0:
        _discard(awaitable)
        raise ValueError("timeout_seconds must be > 0")
    if cancel_token is not None and cancel_token.is_cancelled:
        _discard(awaitable)
        raise asyncio.CancelledError(cancel_token.reason)

    inner: asyncio.Future[T] = asyncio.ensure_future(awaitable)
    pending: set[asyncio.Future[object]] = {inner}
    stop: asyncio.Task[None] | None = None
    if cancel_token is not None:
        stop = asyncio.create_task(cancel_token.wait())
        pending.add(stop)

    try:
        done, _ = await asyncio.wait(
            pending, timeout=timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
        if inner in done:
            return inner.result()
        await _cancel_and_wait(inner)
        if stop is not None and stop in done:
            raise asyncio.CancelledError(cancel_token.reason if cancel_token else None)
        raise TimeoutError(f"operation timed out after {timeout_seconds} seconds")
    finally:
        # Covers the caller's own task being cancelled while waiting.
        if not inner.done():
            await _cancel_and_wait(inner)
        if stop is not None:
            await _cancel_and_wait(stop)


async def _cancel_and_wait(future: asyncio.Future[object]) -> None:
    future.cancel()
    try:
        await future
    except asyncio.CancelledError:
        pass


def _discard(awaitable: Awaitable[object]) -> None:
    # A coroutine that is never scheduled must be closed, or CPython warns
    # that it was never awaited.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = [
    "CancellationToken",
    "run_with_timeout",
]
