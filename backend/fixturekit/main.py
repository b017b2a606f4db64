"""
Main application module for the fixturekit backend.

This file sets up the FastAPI application, configures CORS so the
fixture designer frontend can make cross-origin requests, mounts the
static frontend files when they exist, and exposes a simple health
check endpoint.

Routers for mesh processing, footprints and baseplates are included
under the `/api` namespace.
"""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api.routes_baseplates import router as baseplates_router
from .api.routes_footprint import router as footprint_router
from .api.routes_mesh import router as mesh_router

# The baseplate tables are created on startup; init_db is idempotent.
from .services.baseplate_store import init_db  # type: ignore


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="fixturekit")

    @app.on_event("startup")  # type: ignore[misc]
    async def startup_event() -> None:
        init_db()

    # Allow all origins by default.  In production you should restrict
    # this to the domains that are allowed to access your API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(mesh_router, prefix="/api", tags=["mesh"])
    app.include_router(footprint_router, prefix="/api", tags=["footprint"])
    app.include_router(baseplates_router, prefix="/api", tags=["baseplates"])

    # Serve the compiled frontend from <repo>/frontend when present.
    frontend_dir = Path(__file__).resolve().parents[2] / "frontend"
    if frontend_dir.exists():
        app.mount(
            "/",
            StaticFiles(directory=str(frontend_dir), html=True),
            name="frontend",
        )

    return app


# Uvicorn imports this when running `uvicorn fixturekit.main:app` from backend/
app = create_app()
