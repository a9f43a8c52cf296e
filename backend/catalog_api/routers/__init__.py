"""Router exports for the catalog API."""
from . import health, jobs, movies, providers, shows

__all__ = ["health", "jobs", "movies", "providers", "shows"]
