"""Show listing endpoints."""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_show_queries
from ..services.query import QueryService

router = APIRouter(tags=["shows"])


@router.get("/shows", response_model=list[str])
def list_show_pages(service: QueryService = Depends(get_show_queries)) -> list[str]:
    """Return one identifier per page of listable shows."""

    return service.list_pages()


@router.get("/shows/{page}")
def get_show_page(
    page: str,
    keywords: str | None = Query(default=None, description="Whole words the title must contain."),
    genre: str | None = Query(default=None, description="Genre filter; 'all' disables it."),
    sort: str | None = Query(default=None, description="Sort mode such as name, rating or year."),
    order: int | None = Query(default=None, description="1 for ascending, -1 for descending."),
    service: QueryService = Depends(get_show_queries),
) -> list[dict[str, Any]]:
    """Return a page of shows, or every show for the ``all`` page."""

    return service.get_page(page, keywords=keywords, genre=genre, sort=sort, order=order)


@router.get("/show/{entry_id}")
def get_show(entry_id: str, service: QueryService = Depends(get_show_queries)) -> dict[str, Any]:
    """Return one show with its episodes."""

    document = service.get_one(entry_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Show not found")
    return document


@router.get("/random/show")
def get_random_show(service: QueryService = Depends(get_show_queries)) -> dict[str, Any]:
    """Return a show drawn at random from the catalog."""

    document = service.get_random()
    if document is None:
        raise HTTPException(status_code=404, detail="No shows available")
    return document
