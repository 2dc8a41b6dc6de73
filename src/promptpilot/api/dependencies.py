"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - AppContext and PromptHandler stored in app.state
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from promptpilot.context import AppContext
from promptpilot.handlers import PromptHandler
from promptpilot.repositories import InMemoryDataSource

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    """Dependency injection for AppContext from app.state.

    Raises:
        RuntimeError: If the context is not initialized
    """
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("AppContext not initialized. Check lifespan setup.")
    return context


def get_handler(request: Request) -> PromptHandler:
    """Dependency injection for PromptHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The PromptHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "handler", None)
    if handler is None:
        raise RuntimeError("PromptHandler not initialized. Check lifespan setup.")
    return handler


def install_context(app: FastAPI, context: AppContext) -> None:
    """Store a context and its handler in app.state."""
    app.state.context = context
    app.state.handler = PromptHandler(context=context)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Uses the AppContext already installed on app.state, or builds a
    default one (in-memory data source, persistent store per settings).
    Starts cache maintenance on startup and stops it on shutdown; a
    context built here is also closed here.

    Args:
        app: The FastAPI application instance

    Yields:
        None
    """
    owned = getattr(app.state, "context", None) is None
    if owned:
        install_context(app, AppContext.create(InMemoryDataSource()))

    context: AppContext = app.state.context
    await context.start()
    logger.info(
        f"PromptPilot API started (store backend: {context.settings.persistent_store_backend})"
    )

    yield

    if owned:
        await context.aclose()
        del app.state.handler
        del app.state.context
    else:
        await context.maintenance.stop()
    logger.info("PromptPilot API shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[PromptHandler, Depends(get_handler)]
ContextDep = Annotated[AppContext, Depends(get_context)]
