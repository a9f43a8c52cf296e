"""Generic adapter for providers publishing their catalog as JSON pages."""
from __future__ import annotations

import logging
from typing import Any, Iterator

import httpx
from pydantic import ValidationError

from ..schemas import ProviderConfigModel, RawRecord

logger = logging.getLogger(__name__)


class JsonFeedAdapter:
    """Fetch ``endpoint`` page by page and yield the records it lists.

    The endpoint is a template formatted with the provider ``params`` plus the
    current ``page`` (e.g. ``https://feed.example/shows/{page}``). A page may be
    a JSON array or an object holding the array under ``results``. Fetching
    stops after ``params["pages"]`` pages (default 1) or at the first empty page.
    """

    def __init__(self, *, timeout: float = 30.0, transport: httpx.BaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        pages = int(config.params.get("pages", 1))
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            for page in range(1, pages + 1):
                url = config.endpoint.format(**{**config.params, "page": page})
                response = client.get(url)
                response.raise_for_status()
                items = _extract_items(response.json())
                if not items:
                    break
                for item in items:
                    record = _parse_item(config, item)
                    if record is not None:
                        yield record


def _extract_items(payload: Any) -> list[Any]:
    if isinstance(payload, dict):
        payload = payload.get("results", [])
    return payload if isinstance(payload, list) else []


def _parse_item(config: ProviderConfigModel, item: Any) -> RawRecord | None:
    if not isinstance(item, dict):
        logger.warning("Skipping non-object item from %s", config.name)
        return None
    try:
        return RawRecord.model_validate({**item, "provider": config.name, "kind": config.kind})
    except ValidationError as exc:
        logger.warning("Skipping invalid item from %s: %s", config.name, exc.errors()[0]["msg"])
        return None
