"""FastAPI application factory for Project Tracker.

This module provides the main application factory function that creates
and configures a FastAPI application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs and actor binding
- Service container lifecycle management
- Error handlers mapping service errors to HTTP status codes
- Project, developer, task, audit, statistics and health endpoints

Example usage:
    >>> from projecttracker.config import ProjectTrackerConfig
    >>> from projecttracker.web.app import create_app
    >>>
    >>> config = ProjectTrackerConfig()
    >>> app = create_app(config)
    >>>
    >>> # Run with uvicorn
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projecttracker import __version__
from projecttracker.config import ProjectTrackerConfig
from projecttracker.database.connection import create_schema
from projecttracker.logging import get_logger
from projecttracker.services.container import ServiceContainer, build_container
from projecttracker.web.errors import register_exception_handlers
from projecttracker.web.middleware import RequestLoggingMiddleware
from projecttracker.web.routes.audit import create_audit_router
from projecttracker.web.routes.developers import create_developers_router
from projecttracker.web.routes.health import create_health_router
from projecttracker.web.routes.projects import create_projects_router
from projecttracker.web.routes.statistics import create_statistics_router
from projecttracker.web.routes.tasks import create_tasks_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage the service container across the application lifetime.

    A container already placed on app.state is used as is and left open;
    otherwise one is built from app.state.config and closed on shutdown,
    which drains pending audit writes and disposes both engines.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, cleans up on context exit
    """
    # Access config from app.state (set in create_app)
    config: ProjectTrackerConfig = app.state.config
    container: ServiceContainer | None = getattr(app.state, "container", None)
    owned = container is None

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    if container is None:
        # Initialize database connection pools and services
        container = build_container(config)
        # Store in app.state for dependency injection
        app.state.container = container
        logger.info(
            "database_pool_initialized",
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
        )

    if config.database.create_schema:
        await create_schema(container.engine, container.audit_engine)
        logger.info("schema_ensured")

    yield

    logger.info("app_shutdown_begin")
    # Shutdown: drain audit writes and dispose of database connections
    if owned:
        await container.close()
        logger.info("database_pool_disposed")


def create_app(
    config: ProjectTrackerConfig | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional ProjectTrackerConfig. If None, creates default config.
        container: Optional prebuilt service container. When given, the
            application does not build or close one itself.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = ProjectTrackerConfig()

    # Create FastAPI app with lifespan manager
    app = FastAPI(
        title="Project Tracker",
        version=__version__,
        description="Audited project, developer, and task management",
        lifespan=lifespan,
    )

    # Store config in app.state for lifespan access
    app.state.config = config
    if container is not None:
        app.state.container = container

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Register routers
    app.include_router(create_health_router())
    app.include_router(create_projects_router())
    app.include_router(create_developers_router())
    app.include_router(create_tasks_router())
    app.include_router(create_audit_router())
    app.include_router(create_statistics_router())

    logger.info("app_created", version=__version__, cors_origins=config.web.cors_origins)

    return app
