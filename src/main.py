from __future__ import annotations

import os

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.profile_routes import profile_body_exception_handler
from src.infrastructure.api.routes.profile_routes import router as profile_router
from src.infrastructure.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Profile Editor Backend",
        version="0.1.0",
        description="""
        ## Profile Editor API

        Minimal API for viewing and editing a single user profile held in memory.

        ### Features
        - **Read**: `GET /profile` returns the current record, never cached
        - **Update**: `PUT /profile` merges a partial record and refreshes its timestamp
        - **Validation**: updates are checked against the same rules as the edit form

        ### Response Envelope
        Successful calls return `{"success": true, "data": {...}}`. Failures return
        `{"success": false, "error": "..."}` with no internal details:
        - **400 Bad Request**: Update body failed validation (field messages under `errors`)
        - **500 Internal Server Error**: The profile could not be read or written
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app)
    app.add_exception_handler(RequestValidationError, profile_body_exception_handler)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the Profile Editor API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "profile-editor", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(profile_router)
    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on HOST:PORT (default 127.0.0.1:8000)."""
    uvicorn.run(
        "src.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    run()
