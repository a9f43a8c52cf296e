"""Exception taxonomy shared by the catalog services."""
from __future__ import annotations


class CatalogError(RuntimeError):
    """Base class for catalog service failures."""


class InvalidLinkError(CatalogError, ValueError):
    """Raised when a distribution link cannot be resolved into a torrent variant."""


class InvalidQueryError(CatalogError, ValueError):
    """Raised when query parameters cannot be turned into a read pipeline."""


class NotFoundError(CatalogError, LookupError):
    """Raised when a lookup by identifier has no match."""


class ProviderFailure(CatalogError):
    """Raised when a provider adapter fails during a scrape run."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"Provider {provider} failed: {message}")
        self.provider = provider


class ImportUnavailable(CatalogError):
    """Raised when an import source cannot be read."""


class ConfirmationFailure(CatalogError):
    """Raised when the confirmation prompt fails during an import."""


class WriteConflictError(CatalogError):
    """Raised when an entry keeps changing under a read-merge-write."""
