"""
Patch Engine Backend - FastAPI Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routers import changesets, config, edits, events
from services.config_manager import ConfigManager
from services.container import build_services
from services.errors import (
    InvalidStateTransitionError,
    IOFailureError,
    NotFoundError,
    PathOutsideWorkspaceError,
    PatchEngineError,
    ValidationConflictError,
)

logger = logging.getLogger("patch_engine")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting Patch Engine Backend...")
    config_manager = ConfigManager.get_instance()
    app.state.config = config_manager.get_config()
    logger.info("ConfigManager initialized (%s)", config_manager.config_file)

    app.state.services = build_services(app.state.config)
    logger.info(
        "Engine services ready (workspace=%s, strict_mode=%s)",
        app.state.config.get("workspace_root"),
        app.state.config.get("strict_mode"),
    )

    yield
    # Shutdown: Cleanup
    logger.info("Shutting down Patch Engine Backend...")


app = FastAPI(
    title="Patch Engine Backend",
    description="Safe, reviewable, reversible file edits for AI-assisted tooling",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for local editor/plugin clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(edits.router, prefix="/api/edits", tags=["edits"])
app.include_router(changesets.router, prefix="/api/changesets", tags=["changesets"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


# ========== Error Handling ==========


def _status_for(exc: PatchEngineError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, PathOutsideWorkspaceError):
        return 403
    if isinstance(exc, InvalidStateTransitionError):
        return 409
    if isinstance(exc, ValidationConflictError):
        return 422
    if isinstance(exc, IOFailureError):
        return 500
    return 400


@app.exception_handler(PatchEngineError)
async def patch_engine_error_handler(request: Request, exc: PatchEngineError) -> JSONResponse:
    """Map engine errors to HTTP responses with structured details"""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__, **exc.details},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "patch-engine-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get("server", {})
    uvicorn.run(app, host=server.get("host", "127.0.0.1"), port=int(server.get("port", 8000)))
