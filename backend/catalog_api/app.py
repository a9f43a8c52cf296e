"""Application factory for the Marquee catalog API."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import InvalidQueryError
from .routers import health, jobs, movies, providers, shows
from .services.queue import JobQueueService
from .settings import CatalogSettings
from .state import AppState


def create_app(settings: CatalogSettings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or CatalogSettings()
    app_state = AppState(settings=resolved_settings)

    app = FastAPI(title="Marquee Catalog API", version="0.1.0")
    app.state.app_state = app_state
    app.state.settings = app_state.settings
    app.state.job_queue = JobQueueService(resolved_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    for router in (
        health.router,
        shows.router,
        movies.router,
        providers.router,
        jobs.router,
    ):
        app.include_router(router)

    return app
