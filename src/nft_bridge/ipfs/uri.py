"""Content-addressed URI helpers: normalize any IPFS reference to a content path."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_IPFS_SCHEME = "ipfs://"
_GATEWAY_PATH = re.compile(r"/ipfs/(.+)$")
_TRAILING_NUMBER = re.compile(r"(\d+)(?:\.json)?/?$")
_ANY_NUMBER = re.compile(r"\d+")


def is_http(uri: str) -> bool:
    return uri.startswith(("http://", "https://"))


def content_path(uri: str | None) -> str | None:
    """Return ``<hash>[/<path>]`` for any IPFS reference, or None.

    Accepts ``ipfs://<hash>``, ``ipfs://ipfs/<hash>``, ``/ipfs/<hash>``, a raw
    ``Qm...``/``baf...`` hash, path-style gateway URLs
    (``https://host/ipfs/<hash>``) and subdomain gateway URLs
    (``https://<hash>.ipfs.host/<path>``). Plain web URLs return None.
    """
    if not uri:
        return None
    uri = uri.strip()
    if uri.startswith(_IPFS_SCHEME):
        path = uri[len(_IPFS_SCHEME):]
        if path.startswith("ipfs/"):
            path = path[len("ipfs/"):]
        return path.lstrip("/") or None
    if is_http(uri):
        parts = urlsplit(uri)
        if ".ipfs." in parts.netloc:
            cid = parts.netloc.split(".ipfs.", 1)[0]
            return cid + parts.path.rstrip("/") if parts.path not in ("", "/") else cid
        match = _GATEWAY_PATH.search(parts.path)
        return match.group(1) if match else None
    if uri.startswith("/ipfs/"):
        return uri[len("/ipfs/"):] or None
    return uri.lstrip("/") or None


def join_gateway(gateway: str, path: str) -> str:
    """Join a gateway base URL (``https://host/ipfs/``) with a content path."""
    base = gateway if gateway.endswith("/") else gateway + "/"
    return base + path


def candidate_urls(uri: str, gateways: list[str]) -> list[tuple[str, str]]:
    """Ordered (gateway, url) pairs to try for ``uri``.

    A plain web URL that is not an IPFS gateway URL has a single candidate:
    itself.
    """
    path = content_path(uri)
    if path is None:
        return [(uri, uri)] if is_http(uri) else []
    return [(gateway, join_gateway(gateway, path)) for gateway in gateways]


def image_url(image_uri: str | None, gateway: str) -> str:
    """Browser-loadable URL for an image reference."""
    if not image_uri:
        return ""
    if is_http(image_uri):
        return image_uri
    path = content_path(image_uri)
    return join_gateway(gateway, path) if path else ""


def token_id_hint(uri: str | None) -> str | None:
    """Best-effort numeric token id in a URI (trailing number preferred)."""
    if not uri:
        return None
    match = _TRAILING_NUMBER.search(uri)
    if match:
        return match.group(1)
    match = _ANY_NUMBER.search(uri)
    return match.group(0) if match else None
