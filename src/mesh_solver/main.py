"""Main FastAPI application entry point."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mesh_solver.api.health import router as health_router
from mesh_solver.api.routes import router as solver_router
from mesh_solver.config.registry import VenueRegistry
from mesh_solver.config.settings import Settings, settings as default_settings
from mesh_solver.errors import DomainError, MeshSolverError
from mesh_solver.execution.strategy import ArbitrageStrategy

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Malformed input: the same request can never succeed."""
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "error": exc.__class__.__name__},
    )


async def solver_error_handler(request: Request, exc: MeshSolverError) -> JSONResponse:
    logger.error(f"Solver failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "error": exc.__class__.__name__},
    )


def create_app(settings: Optional[Settings] = None,
               registry: Optional[VenueRegistry] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings
    app = FastAPI(
        title="Mesh Solver API",
        description="Cross-venue AMM arbitrage and SVM transaction assembly for the multi-VM mesh",
        version="0.1.0",
        debug=settings.debug,
    )

    app.state.strategy = ArbitrageStrategy(registry=registry, settings=settings)

    # Include API routers
    app.include_router(health_router, tags=["health"])
    app.include_router(solver_router, tags=["solver"])

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(MeshSolverError, solver_error_handler)

    return app


if __name__ == "__main__":
    import uvicorn

    from mesh_solver.logging_config import configure_logging

    configure_logging(default_settings.log_level)
    uvicorn.run(
        "mesh_solver.main:create_app",
        factory=True,
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_level="info" if not default_settings.debug else "debug",
    )
