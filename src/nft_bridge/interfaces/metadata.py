"""MetadataSource protocol - resolves token URIs to normalized metadata."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from nft_bridge.models.metadata import FetchResult, Metadata


class MetadataSource(Protocol):
    """Retrieves off-chain JSON metadata for a token."""

    async def fetch(self, uri: str) -> FetchResult:
        """Try each gateway in order; report every attempt."""
        ...

    async def resolve(self, uri: str, token_id: int | None = None) -> Metadata:
        """Resolve to Metadata. Never raises; degrades to a placeholder."""
        ...

    async def resolve_many(self, tokens: Iterable[tuple[int, str]]) -> dict[int, Metadata]:
        """Resolve (token_id, uri) pairs concurrently, keyed by token id."""
        ...
