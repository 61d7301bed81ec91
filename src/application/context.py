"""
application.context - Request-scoped context and process-wide service state.

Replaces the module-level "isInitialized" flag with an explicit state
machine (ServiceState / AppState) that is held by the composition root and
passed to request handlers. Every request gets its own RequestContext with
a Deadline, so an abandoned client request stops its in-flight upstream
calls instead of letting them run to completion.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import uuid4

from domain.exceptions import UpstreamTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Service state machine
# ---------------------------------------------------------------------------

class ServiceState(str, Enum):
    """UNINITIALIZED → LOADING → READY. There is no way back."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


_ALLOWED_TRANSITIONS = {
    ServiceState.UNINITIALIZED: ServiceState.LOADING,
    ServiceState.LOADING: ServiceState.READY,
}


class AppState:
    """Holds the corpus readiness state shared by all request handlers.

    Request handlers only ever read it. The startup task drives the
    transitions; a load failure terminates the process instead of
    moving backwards.
    """

    def __init__(self) -> None:
        self._state = ServiceState.UNINITIALIZED

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ServiceState.READY

    def start_loading(self) -> None:
        self._transition(ServiceState.LOADING)

    def mark_ready(self) -> None:
        self._transition(ServiceState.READY)

    def _transition(self, target: ServiceState) -> None:
        if _ALLOWED_TRANSITIONS.get(self._state) is not target:
            raise RuntimeError(
                f"Illegal service state transition: {self._state.value} -> {target.value}"
            )
        logger.info("Service state: %s -> %s", self._state.value, target.value)
        self._state = target


# ---------------------------------------------------------------------------
# Deadline
# ---------------------------------------------------------------------------

class Deadline:
    """Absolute time budget shared by every upstream call of one request.

    timeout_seconds=None means "no deadline".
    """

    def __init__(
        self,
        timeout_seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._timeout = timeout_seconds
        self._expires_at = (
            clock() + timeout_seconds if timeout_seconds is not None else None
        )

    @classmethod
    def none(cls) -> Deadline:
        return cls(None)

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def run(self, awaitable: Awaitable[T], stage: str = "upstream call") -> T:
        """Await *awaitable* within the remaining budget.

        The awaited call is cancelled when the budget runs out and
        UpstreamTimeoutError is raised in its place.
        """
        remaining = self.remaining()
        if remaining is None:
            return await awaitable
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise UpstreamTimeoutError(
                f"Request deadline of {self._timeout:g}s exceeded before {stage}"
            )
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeoutError(
                f"Request deadline of {self._timeout:g}s exceeded during {stage}"
            ) from exc


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

@dataclass
class RequestContext:
    """Per-request context passed through every pipeline stage.

    Attributes:
        deadline:   Time budget for all upstream calls of this request.
        request_id: Unique per request, for tracing/logging.
    """
    deadline: Deadline = field(default_factory=Deadline.none)
    request_id: str = field(default_factory=lambda: uuid4().hex)

    @classmethod
    def with_timeout(cls, timeout_seconds: Optional[float]) -> RequestContext:
        return cls(deadline=Deadline(timeout_seconds))
