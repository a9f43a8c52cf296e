"""Service heartbeat."""
from fastapi import APIRouter, Depends

from ..dependencies import get_app_state, get_job_queue
from ..schemas import HealthStatus, QueueHealthStatus
from ..services.queue import JobQueueService
from ..state import AppState

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(
    app_state: AppState = Depends(get_app_state),
    queue: JobQueueService = Depends(get_job_queue),
) -> HealthStatus:
    """Report queue reachability and how many entries each collection holds."""

    store = app_state.catalog_store
    status = HealthStatus(entries={"shows": store.count("show"), "movies": store.count("movie")})
    if not queue.ping():
        status.queue = QueueHealthStatus(status="error", detail="queue_unreachable")
    return status
