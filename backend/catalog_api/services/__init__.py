"""Service layer for catalog ingestion, merging and reads."""

from .curation import add_movie_torrent, add_show_torrent
from .merge import entry_from_raw, fold, merge_entries, reconcile
from .orchestrator import ProviderOrchestrator, run_ingestion
from .query import QueryConfig, QueryService, movie_query_config, show_query_config
from .torrent_resolver import resolve
from .transfer import CatalogTransfer

__all__ = [
    "CatalogTransfer",
    "ProviderOrchestrator",
    "QueryConfig",
    "QueryService",
    "add_movie_torrent",
    "add_show_torrent",
    "entry_from_raw",
    "fold",
    "merge_entries",
    "movie_query_config",
    "reconcile",
    "resolve",
    "run_ingestion",
    "show_query_config",
]
