"""
Shared FastAPI dependencies.

- get_factory(): returns the ServiceFactory (set at startup).
- require_ready(): rejects requests until the corpus load has finished.
"""

from __future__ import annotations

from fastapi import Depends

from domain.exceptions import ServiceNotReadyError
from factory import ServiceFactory

NOT_READY_MESSAGE = "RAG service is initializing, please try again in a moment"

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise ServiceNotReadyError(NOT_READY_MESSAGE)
    return _factory


async def require_ready(factory: ServiceFactory = Depends(get_factory)) -> ServiceFactory:
    """Runs before body validation, so a not-ready service answers 503 first."""
    if not factory.state.is_ready:
        raise ServiceNotReadyError(NOT_READY_MESSAGE)
    return factory
