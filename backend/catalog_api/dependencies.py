"""FastAPI dependencies for the catalog API."""
from fastapi import Depends, Request

from .services.query import QueryService
from .services.queue import JobQueueService
from .state import AppState
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.provider_store import ProviderStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_job_queue(request: Request) -> JobQueueService:
    return request.app.state.job_queue


def get_show_queries(app_state: AppState = Depends(get_app_state)) -> QueryService:
    return app_state.shows


def get_movie_queries(app_state: AppState = Depends(get_app_state)) -> QueryService:
    return app_state.movies


def get_provider_store(app_state: AppState = Depends(get_app_state)) -> ProviderStore:
    return app_state.provider_store


def get_job_store(app_state: AppState = Depends(get_app_state)) -> JobStore:
    return app_state.job_store


def get_job_log_store(app_state: AppState = Depends(get_app_state)) -> JobLogStore:
    return app_state.job_log_store
