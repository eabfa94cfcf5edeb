"""Off-chain token metadata and the outcome of resolving it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Attribute:
    trait_type: str
    value: Any


@dataclass
class Metadata:
    """Normalized token metadata. ``error`` marks a degraded placeholder."""

    name: str
    description: str = ""
    image: str = ""
    attributes: list[Attribute] = field(default_factory=list)
    collection: str = ""
    error: bool = False
    original_uri: str = ""
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayAttempt:
    """One try against one gateway."""

    gateway: str
    url: str
    error: str | None = None
    status_code: int | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchSuccess:
    data: dict[str, Any]
    gateway: str
    attempts: list[GatewayAttempt]


@dataclass
class FetchFailure:
    attempts: list[GatewayAttempt]

    @property
    def last_error(self) -> str | None:
        return self.attempts[-1].error if self.attempts else None


FetchResult = Union[FetchSuccess, FetchFailure]
