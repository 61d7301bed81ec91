"""Tests for the service state machine and request deadlines."""

from __future__ import annotations

import asyncio

import pytest

from application.context import AppState, Deadline, RequestContext, ServiceState
from domain.exceptions import UpstreamTimeoutError


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_state_moves_forward_only() -> None:
    state = AppState()
    assert state.state is ServiceState.UNINITIALIZED
    assert not state.is_ready

    state.start_loading()
    assert state.state is ServiceState.LOADING
    assert not state.is_ready

    state.mark_ready()
    assert state.is_ready

    with pytest.raises(RuntimeError, match="Illegal service state transition"):
        state.start_loading()


def test_cannot_skip_loading() -> None:
    with pytest.raises(RuntimeError):
        AppState().mark_ready()


def test_deadline_none_never_expires() -> None:
    deadline = Deadline.none()
    assert deadline.remaining() is None
    assert not deadline.expired


def test_deadline_counts_down_with_clock() -> None:
    clock = FakeClock()
    deadline = Deadline(10, clock=clock)

    assert deadline.remaining() == 10
    clock.now += 4
    assert deadline.remaining() == 6
    clock.now += 20
    assert deadline.remaining() == 0
    assert deadline.expired


async def test_expired_deadline_refuses_to_start_a_call() -> None:
    clock = FakeClock()
    deadline = Deadline(1, clock=clock)
    clock.now += 5

    async def call():
        return "unreachable"

    with pytest.raises(UpstreamTimeoutError, match="before similarity search"):
        await deadline.run(call(), "similarity search")


async def test_run_cancels_slow_call() -> None:
    cancelled = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(UpstreamTimeoutError, match="during answer generation"):
        await Deadline(0.05).run(slow(), "answer generation")
    assert cancelled.is_set()


async def test_run_without_deadline_returns_result() -> None:
    async def fast():
        return 42

    assert await Deadline.none().run(fast()) == 42


def test_request_context_ids_are_unique() -> None:
    first = RequestContext.with_timeout(30)
    second = RequestContext.with_timeout(None)

    assert first.request_id != second.request_id
    assert first.deadline.remaining() is not None
    assert second.deadline.remaining() is None
