"""Metadata resolver - fetches token JSON through an ordered list of IPFS gateways."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx

from nft_bridge.ipfs.uri import candidate_urls, token_id_hint
from nft_bridge.models.config import DEFAULT_GATEWAYS
from nft_bridge.models.metadata import (
    Attribute,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    GatewayAttempt,
    Metadata,
)

log = logging.getLogger(__name__)

_KNOWN_FIELDS = {"name", "description", "image", "attributes", "collection"}


def _attributes(raw: Any) -> list[Attribute]:
    if not isinstance(raw, list):
        return []
    attrs = []
    for entry in raw:
        if isinstance(entry, dict):
            attrs.append(Attribute(
                trait_type=str(entry.get("trait_type", "")),
                value=entry.get("value"),
            ))
    return attrs


def validate_metadata(raw: dict[str, Any], original_uri: str = "") -> Metadata:
    """Normalize a parsed metadata object so no field is ever missing.

    ``name`` is required and gets a placeholder; optional fields default to
    empty values. Unrecognized keys are kept in ``extra``.
    """
    return Metadata(
        name=str(raw.get("name") or "Unknown name"),
        description=str(raw.get("description") or ""),
        image=str(raw.get("image") or ""),
        attributes=_attributes(raw.get("attributes")),
        collection=str(raw.get("collection") or ""),
        original_uri=original_uri,
        extra={k: v for k, v in raw.items() if k not in _KNOWN_FIELDS},
    )


def placeholder_metadata(uri: str, token_id: int | None = None) -> Metadata:
    """Degraded Metadata for a token whose JSON could not be retrieved."""
    hint = str(token_id) if token_id is not None else token_id_hint(uri)
    return Metadata(
        name=f"NFT #{hint or 'Unknown'}",
        error=True,
        original_uri=uri or "",
    )


class MetadataResolver:
    """Resolves token URIs to Metadata through a gateway fallback chain.

    Each gateway is tried once, in order, with its own timeout. A body is
    parsed as JSON whatever its declared content type. The first gateway to
    return a JSON object wins. ``resolve()`` never raises: when every gateway
    fails it returns a placeholder with ``error=True``.

    Successful results can be cached per token id for the life of the
    resolver; degraded results are never cached.
    """

    def __init__(
        self,
        gateways: list[str] | None = None,
        timeout: float = 10.0,
        max_concurrent: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._gateways = list(gateways or DEFAULT_GATEWAYS)
        self._timeout = timeout
        self._max_concurrent = max_concurrent
        self._transport = transport
        self._cache: dict[int, Metadata] = {}

    @property
    def gateways(self) -> list[str]:
        return list(self._gateways)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _attempt(
        self, client: httpx.AsyncClient, gateway: str, url: str,
    ) -> tuple[GatewayAttempt, dict[str, Any] | None]:
        """One GET against one gateway, cancelled after the timeout."""
        start = time.monotonic()
        status: int | None = None
        try:
            resp = await asyncio.wait_for(client.get(url), timeout=self._timeout)
            status = resp.status_code
            resp.raise_for_status()
            # Gateways often mislabel content type; parse regardless
            data = json.loads(resp.text)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except asyncio.TimeoutError:
            error = f"timeout after {self._timeout}s"
        except httpx.HTTPStatusError as exc:
            error = f"HTTP {exc.response.status_code}"
        except ValueError as exc:
            error = f"invalid JSON: {exc}"
        except httpx.HTTPError as exc:
            error = f"{type(exc).__name__}: {exc}"
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            duration = int((time.monotonic() - start) * 1000)
            return GatewayAttempt(gateway, url, None, status, duration), data

        duration = int((time.monotonic() - start) * 1000)
        return GatewayAttempt(gateway, url, error, status, duration), None

    async def fetch(self, uri: str) -> FetchResult:
        """Walk the gateway chain for ``uri`` and report every attempt made."""
        attempts: list[GatewayAttempt] = []
        candidates = candidate_urls(uri, self._gateways) if uri else []
        if not candidates:
            log.warning("No retrievable location for token URI %r", uri)
            return FetchFailure(attempts=attempts)

        async with self._client() as client:
            for gateway, url in candidates:
                log.debug("Fetching metadata from %s", url)
                attempt, data = await self._attempt(client, gateway, url)
                attempts.append(attempt)
                if data is not None:
                    log.debug("Fetched metadata from %s in %dms", url, attempt.duration_ms)
                    return FetchSuccess(data=data, gateway=gateway, attempts=attempts)
                log.warning("Gateway %s failed for %s: %s", gateway, uri, attempt.error)

        return FetchFailure(attempts=attempts)

    async def resolve(self, uri: str, token_id: int | None = None) -> Metadata:
        result = await self.fetch(uri)
        if isinstance(result, FetchSuccess):
            return validate_metadata(result.data, original_uri=uri)
        log.error(
            "Metadata unavailable for %s after %d gateway(s); last error: %s",
            uri, len(result.attempts), result.last_error,
        )
        return placeholder_metadata(uri, token_id)

    async def resolve_token(self, token_id: int, uri: str) -> Metadata:
        """Resolve with the per-token cache."""
        cached = self._cache.get(token_id)
        if cached is not None and cached.original_uri == uri:
            return cached
        metadata = await self.resolve(uri, token_id)
        if not metadata.error:
            self._cache[token_id] = metadata
        return metadata

    async def resolve_many(self, tokens: Iterable[tuple[int, str]]) -> dict[int, Metadata]:
        """Resolve many tokens concurrently. One failure never affects another."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _one(token_id: int, uri: str) -> tuple[int, Metadata]:
            async with semaphore:
                return token_id, await self.resolve_token(token_id, uri)

        pairs = await asyncio.gather(*(_one(t, u) for t, u in tokens))
        return dict(pairs)

    def clear_cache(self) -> None:
        self._cache.clear()
