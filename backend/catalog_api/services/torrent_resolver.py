"""Validate distribution links and derive torrent variant metadata."""
from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import parse_qs, unquote, urlsplit

from ..errors import InvalidLinkError
from ..schemas import TorrentVariant

SUPPORTED_KINDS = ("movie", "show")

_BTIH_RE = re.compile(r"^urn:btih:(?P<hash>[0-9a-fA-F]{40}|[A-Za-z2-7]{32})$")


def resolve(link: Any, kind: Any) -> TorrentVariant:
    """Resolve ``link`` for content ``kind`` into a :class:`TorrentVariant`.

    Magnet URIs must carry a BitTorrent info hash; direct links must be
    http(s) URLs to a ``.torrent`` file. Anything else raises
    :class:`InvalidLinkError`. Counts default to zero unless the magnet
    carries ``x.se``/``x.pe`` hints.
    """

    if kind not in SUPPORTED_KINDS:
        raise InvalidLinkError(f"Unsupported content kind: {kind!r}")
    if not isinstance(link, str) or not link.strip():
        raise InvalidLinkError(f"Link must be a non-empty string, got {link!r}")

    link = link.strip()
    parts = urlsplit(link)
    scheme = parts.scheme.lower()
    if scheme == "magnet":
        return _resolve_magnet(link, parts.query)
    if scheme in ("http", "https"):
        return _resolve_direct(link, parts.netloc, parts.path)
    raise InvalidLinkError(f"Unrecognised link scheme: {link!r}")


def _resolve_magnet(link: str, query: str) -> TorrentVariant:
    params = parse_qs(query)
    info_hash = None
    for value in params.get("xt", []):
        match = _BTIH_RE.match(value)
        if match:
            info_hash = match.group("hash").lower()
            break
    if info_hash is None:
        raise InvalidLinkError(f"Magnet link has no BitTorrent info hash: {link!r}")

    names = params.get("dn")
    name = names[0].strip() if names and names[0].strip() else info_hash
    return TorrentVariant(
        link=link,
        name=name,
        seeds=_hint(params, "x.se"),
        peers=_hint(params, "x.pe"),
    )


def _resolve_direct(link: str, netloc: str, path: str) -> TorrentVariant:
    filename = PurePosixPath(unquote(path)).name
    if not netloc or not filename.lower().endswith(".torrent"):
        raise InvalidLinkError(f"Direct link does not point at a .torrent file: {link!r}")
    return TorrentVariant(link=link, name=filename[: -len(".torrent")] or filename)


def _hint(params: dict[str, list[str]], key: str) -> int:
    try:
        return max(int(params.get(key, ["0"])[0]), 0)
    except ValueError:
        return 0
