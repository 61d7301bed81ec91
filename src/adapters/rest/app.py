"""
FastAPI application: REST adapter for the recipe RAG service.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 3001

The server starts answering immediately; the corpus load runs as a
background task and /api/* return 503 until it has finished. A failed
load terminates the process.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from domain.exceptions import ServiceNotReadyError
from infrastructure.config import Settings
from factory import ServiceFactory
from adapters.rest.dependencies import get_factory, set_factory
from adapters.rest.routers import meal_plan, query
from adapters.rest.schemas import ErrorOut, HealthOut

logger = logging.getLogger(__name__)


def _exit_process() -> None:
    os._exit(1)


async def _load_corpus(factory: ServiceFactory, on_failure: Callable[[], None]) -> None:
    try:
        await factory.initialize()
        logger.info("RAG data initialized successfully")
    except Exception:
        logger.critical("Failed to initialize RAG data", exc_info=True)
        on_failure()


def create_app(
    factory: Optional[ServiceFactory] = None,
    *,
    load_on_startup: bool = True,
    on_load_failure: Callable[[], None] = _exit_process,
) -> FastAPI:
    """Build the application.

    With no factory one is built from the environment at startup, after
    validating the configuration (a ConfigurationError aborts startup).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = factory
        if active is None:
            config = Settings.from_env(project_root=_src_dir.parent)
            config.validate()
            active = ServiceFactory(config)
        set_factory(active)

        task = None
        if load_on_startup:
            logger.info("Starting RAG API server...")
            task = asyncio.create_task(_load_corpus(active, on_load_failure))
        app.state.load_task = task
        yield
        if task is not None and not task.done():
            task.cancel()
        set_factory(None)

    cors_origins = list(factory.config.cors_origins) if factory else _cors_from_env()

    app = FastAPI(
        title="Recipe RAG API",
        version="1.0.0",
        description="Conversational recipe generation and meal planning powered by LLM + RAG.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceNotReadyError)
    async def not_ready_handler(request: Request, exc: ServiceNotReadyError):
        return JSONResponse(status_code=503, content=ErrorOut(error=str(exc)).model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(status_code=400, content=ErrorOut(error=message).model_dump())

    app.include_router(query.router)
    app.include_router(meal_plan.router)

    @app.get("/health", tags=["health"], response_model=HealthOut)
    async def health():
        try:
            state = get_factory().state.state.value
        except ServiceNotReadyError:
            state = "uninitialized"
        return HealthOut(status="ok", message="RAG API server is running", state=state)

    return app


def _cors_from_env() -> list[str]:
    from dotenv import load_dotenv
    load_dotenv()

    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


app = create_app()
