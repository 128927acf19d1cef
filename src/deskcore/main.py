"""
deskcore - Main Application
============================

Help-desk authorization and ticket routing service.

Modules:
- Access: Role/permission grants, server-side authorization checks
- Routing: Ticket auto-assignment, SLA policy selection, reference data

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, YAML defaults, notification outbox
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from deskcore.config import settings
from deskcore.core import ApplicationException

# Infrastructure
from deskcore.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)

# Access Module
from deskcore.access.application import AccessService, GrantAdministrationService
from deskcore.access.infrastructure import SQLAlchemyGrantRepository, YAMLGrantDefaultsProvider

# Module Routers
from deskcore.access.interfaces import access_router
from deskcore.routing.interfaces import (
    departments_router,
    sla_policies_router,
    tickets_router,
)

# Shared
from deskcore.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    RequestMetrics,
    application_exception_handler,
    global_exception_handler,
)
from deskcore.shared.infrastructure.logging import get_logger, log_latency, setup_logging

logger = get_logger(__name__)


async def seed_default_grants() -> int:
    """Seed the grant table from the YAML matrix when it is empty."""
    async with get_session_context() as session:
        grant_repo = SQLAlchemyGrantRepository(session)
        service = GrantAdministrationService(
            grant_repo,
            AccessService(grant_repo),
            YAMLGrantDefaultsProvider(settings.grant_defaults_path),
        )
        return await service.seed_defaults()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables (development)
    4. Seed default grants into an empty grant table

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting deskcore", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    if settings.create_tables_on_startup:
        # Use migrations in production
        logger.info("Creating database tables")
        await create_tables()

    if settings.seed_default_grants:
        with log_latency(logger, "seed_default_grants"):
            inserted = await seed_default_grants()
        logger.info("Default grant seeding finished", extra={"inserted": inserted})

    logger.info("deskcore started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down deskcore")
    await close_database()
    logger.info("deskcore shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers."""
    app = FastAPI(
        title="deskcore API",
        description="""
    ## Help-desk Authorization and Ticket Routing

    ---

    ### Access Module

    **Endpoints:**
    - `GET /access/permissions` - Advisory permission map for the caller
    - `GET /access/check` - Check one permission
    - `GET /access/grants` - List grants (`manage_roles`)
    - `PUT /access/grants` - Replace grants for a set of roles (`manage_roles`)

    ---

    ### Routing Module

    **Endpoints:**
    - `POST /tickets` - Create a ticket (auto-assign and SLA selection)
    - `PUT /tickets/{id}` - Edit a ticket (re-plans routing)
    - `PATCH /tickets/{id}/assignee` - Reassign a ticket
    - `PATCH /tickets/{id}/status` - Change status (creator or `change_ticket_status`)
    - `DELETE /tickets/{id}` - Delete a ticket (creator or `delete_tickets`)
    - `POST /tickets/plan` - Preview the routing decision
    - `GET/POST /departments`
    - `GET/POST /sla-policies`, `PUT/DELETE /sla-policies/{id}`

    ---

    ### Identity

    Every request carries `X-User-Id`, resolved against the profile table.
    Authorization is re-checked on the server for every mutation.
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.metrics = RequestMetrics()

    # === Custom Middleware (from shared) ===
    # Last added runs first: the correlation ID is bound before anything logs
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(access_router)
    app.include_router(tickets_router)
    app.include_router(departments_router)
    app.include_router(sla_policies_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "metrics": {"requests": 12, "average_response_ms": 4.2, "by_status": {"2xx": 12}}
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "metrics": request.app.state.metrics.snapshot(),
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "access": {
                    "prefix": "/access",
                    "endpoints": [
                        "GET /access/permissions - Advisory permission map",
                        "GET /access/check - Check one permission",
                        "GET /access/grants - List grants",
                        "PUT /access/grants - Replace grants"
                    ]
                },
                "routing": {
                    "prefix": "/tickets",
                    "endpoints": [
                        "POST /tickets - Create ticket",
                        "GET /tickets/{id} - Get ticket",
                        "PUT /tickets/{id} - Edit ticket",
                        "PATCH /tickets/{id}/assignee - Reassign ticket",
                        "PATCH /tickets/{id}/status - Change ticket status",
                        "DELETE /tickets/{id} - Delete ticket",
                        "POST /tickets/plan - Preview routing"
                    ]
                }
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "deskcore.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
