"""Provider adapters and the registry the orchestrator resolves them from."""
from __future__ import annotations

from typing import Mapping

from .base import ProviderAdapter, UnknownAdapterError
from .json_feed import JsonFeedAdapter


def default_adapters(*, timeout: float = 30.0) -> dict[str, ProviderAdapter]:
    """Return the built-in adapters keyed by their configuration identifier."""

    return {"json-feed": JsonFeedAdapter(timeout=timeout)}


def get_adapter(adapters: Mapping[str, ProviderAdapter], name: str) -> ProviderAdapter:
    try:
        return adapters[name]
    except KeyError as exc:
        raise UnknownAdapterError(name) from exc


__all__ = [
    "JsonFeedAdapter",
    "ProviderAdapter",
    "UnknownAdapterError",
    "default_adapters",
    "get_adapter",
]
