"""Movie listing endpoints."""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_movie_queries
from ..services.query import QueryService

router = APIRouter(tags=["movies"])


@router.get("/movies", response_model=list[str])
def list_movie_pages(service: QueryService = Depends(get_movie_queries)) -> list[str]:
    """Return one identifier per page of listable movies."""

    return service.list_pages()


@router.get("/movies/{page}")
def get_movie_page(
    page: str,
    keywords: str | None = Query(default=None, description="Whole words the title must contain."),
    genre: str | None = Query(default=None, description="Genre filter; 'all' disables it."),
    sort: str | None = Query(default=None, description="Sort mode such as name, rating or year."),
    order: int | None = Query(default=None, description="1 for ascending, -1 for descending."),
    service: QueryService = Depends(get_movie_queries),
) -> list[dict[str, Any]]:
    """Return a page of movies, or every movie for the ``all`` page."""

    return service.get_page(page, keywords=keywords, genre=genre, sort=sort, order=order)


@router.get("/movie/{entry_id}")
def get_movie(entry_id: str, service: QueryService = Depends(get_movie_queries)) -> dict[str, Any]:
    """Return one movie with its torrents."""

    document = service.get_one(entry_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return document


@router.get("/random/movie")
def get_random_movie(service: QueryService = Depends(get_movie_queries)) -> dict[str, Any]:
    """Return a movie drawn at random from the catalog."""

    document = service.get_random()
    if document is None:
        raise HTTPException(status_code=404, detail="No movies available")
    return document
