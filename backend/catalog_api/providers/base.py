"""Contract implemented by provider adapters."""
from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

from ..schemas import ProviderConfigModel, RawRecord


@runtime_checkable
class ProviderAdapter(Protocol):
    """Produces raw candidate records for one provider configuration.

    ``scrape`` returns a lazy iterator. An adapter may skip individual items it
    cannot parse; raising from the iterator ends that provider's run.
    """

    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        ...


class UnknownAdapterError(KeyError):
    """Raised when a provider configuration names an unregistered adapter."""
