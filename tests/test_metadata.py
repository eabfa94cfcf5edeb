"""Metadata resolution through the gateway fallback chain."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from nft_bridge.ipfs.resolver import MetadataResolver, placeholder_metadata, validate_metadata
from nft_bridge.ipfs.uri import candidate_urls, content_path, image_url, token_id_hint
from nft_bridge.models.metadata import Attribute, FetchFailure, FetchSuccess

from tests.conftest import TEST_GATEWAYS
from tests.factories import make_metadata_json

CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


class GatewayScript:
    """MockTransport handler: per-host behaviour, every request recorded."""

    def __init__(self, **hosts) -> None:
        self.hosts = hosts
        self.requests: list[str] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        behaviour = self.hosts.get(request.url.host, "missing")
        if behaviour == "slow":
            await asyncio.sleep(5)
            return httpx.Response(200, json=make_metadata_json())
        if behaviour == "missing":
            return httpx.Response(404, text="not found")
        if behaviour == "error":
            return httpx.Response(502, text="bad gateway")
        if behaviour == "html":
            return httpx.Response(200, text="<html>rate limited</html>",
                                  headers={"content-type": "text/html"})
        if behaviour == "array":
            return httpx.Response(200, json=[1, 2, 3])
        if behaviour == "mislabeled":
            return httpx.Response(200, text=json.dumps(make_metadata_json(7)),
                                  headers={"content-type": "text/plain"})
        return httpx.Response(200, json=behaviour)


def _resolver(script: GatewayScript, timeout: float = 0.2) -> MetadataResolver:
    return MetadataResolver(
        gateways=TEST_GATEWAYS, timeout=timeout, transport=httpx.MockTransport(script),
    )


# ── URI handling ─────────────────────────────────────────────────


@pytest.mark.parametrize("uri, expected", [
    (f"ipfs://{CID}", CID),
    (f"ipfs://{CID}/1.json", f"{CID}/1.json"),
    (f"ipfs://ipfs/{CID}", CID),
    (f"/ipfs/{CID}", CID),
    (CID, CID),
    (f"https://gateway.pinata.cloud/ipfs/{CID}/meta.json", f"{CID}/meta.json"),
    (f"https://{CID.lower()}.ipfs.dweb.link/meta.json", f"{CID.lower()}/meta.json"),
    ("https://example.com/token/1.json", None),
    ("", None),
])
def test_content_path(uri, expected):
    assert content_path(uri) == expected


def test_candidates_follow_gateway_order():
    urls = [url for _, url in candidate_urls(f"ipfs://{CID}", TEST_GATEWAYS)]
    assert urls == [g + CID for g in TEST_GATEWAYS]


def test_plain_web_url_is_its_own_single_candidate():
    uri = "https://example.com/token/1.json"
    assert candidate_urls(uri, TEST_GATEWAYS) == [(uri, uri)]


def test_image_url():
    gateway = "https://gateway.pinata.cloud/ipfs/"
    assert image_url(f"ipfs://{CID}", gateway) == gateway + CID
    assert image_url("https://cdn.example.com/a.png", gateway) == "https://cdn.example.com/a.png"
    assert image_url("", gateway) == ""


@pytest.mark.parametrize("uri, expected", [
    (f"ipfs://{CID}/42.json", "42"),
    ("https://example.com/token/17", "17"),
    ("ipfs://QmNoDigitsHere", None),
])
def test_token_id_hint(uri, expected):
    assert token_id_hint(uri) == expected


# ── Normalization ────────────────────────────────────────────────


def test_validate_fills_missing_fields():
    meta = validate_metadata({"name": "Thing"}, original_uri="ipfs://x")
    assert meta.name == "Thing"
    assert meta.description == ""
    assert meta.image == ""
    assert meta.attributes == []
    assert meta.collection == ""
    assert not meta.error
    assert meta.original_uri == "ipfs://x"


def test_validate_defaults_name_and_keeps_extra_keys():
    meta = validate_metadata({
        "external_url": "https://example.com",
        "attributes": [{"trait_type": "Size", "value": 3}, "junk"],
    })
    assert meta.name == "Unknown name"
    assert meta.attributes == [Attribute("Size", 3)]
    assert meta.extra == {"external_url": "https://example.com"}


def test_error_key_in_a_document_is_not_degraded():
    meta = validate_metadata({"name": "Real", "error": "none"})
    assert not meta.error
    assert meta.extra == {"error": "none"}


def test_placeholder_prefers_explicit_token_id():
    meta = placeholder_metadata(f"ipfs://{CID}/3.json", token_id=42)
    assert meta.name == "NFT #42"
    assert meta.error
    assert meta.attributes == []


def test_placeholder_without_any_id():
    assert placeholder_metadata("ipfs://QmNoDigitsHere").name == "NFT #Unknown"


# ── Fallback chain ───────────────────────────────────────────────


async def test_first_gateway_wins():
    script = GatewayScript(**{"gw-one.test": make_metadata_json(1)})
    result = await _resolver(script).fetch(f"ipfs://{CID}")
    assert isinstance(result, FetchSuccess)
    assert result.gateway == TEST_GATEWAYS[0]
    assert len(result.attempts) == 1
    assert script.requests == [TEST_GATEWAYS[0] + CID]


async def test_falls_through_to_mislabeled_json():
    script = GatewayScript(**{"gw-one.test": "error", "gw-two.test": "mislabeled"})
    result = await _resolver(script).fetch(f"ipfs://{CID}")
    assert isinstance(result, FetchSuccess)
    assert result.gateway == TEST_GATEWAYS[1]
    assert result.data["name"] == "Token 7"
    assert [a.ok for a in result.attempts] == [False, True]
    assert result.attempts[0].error == "HTTP 502"
    assert result.attempts[0].status_code == 502


async def test_slow_gateway_is_abandoned():
    script = GatewayScript(**{"gw-one.test": "slow", "gw-two.test": make_metadata_json(2)})
    result = await _resolver(script, timeout=0.05).fetch(f"ipfs://{CID}")
    assert isinstance(result, FetchSuccess)
    assert result.attempts[0].error.startswith("timeout")


async def test_every_gateway_failing_degrades_to_placeholder():
    script = GatewayScript(**{
        "gw-one.test": "slow", "gw-two.test": "html", "gw-three.test": "array",
    })
    resolver = _resolver(script, timeout=0.05)

    result = await resolver.fetch(f"ipfs://{CID}/1.json")
    assert isinstance(result, FetchFailure)
    assert [a.gateway for a in result.attempts] == TEST_GATEWAYS
    assert result.attempts[1].error.startswith("invalid JSON")
    assert result.last_error.startswith("invalid JSON")

    meta = await resolver.resolve(f"ipfs://{CID}/1.json", token_id=42)
    assert meta.error
    assert meta.name == "NFT #42"
    assert meta.attributes == []
    assert meta.description == ""


async def test_resolve_never_raises_on_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    resolver = MetadataResolver(
        gateways=TEST_GATEWAYS[:2], timeout=0.2, transport=httpx.MockTransport(handler),
    )
    result = await resolver.fetch(f"ipfs://{CID}")
    assert isinstance(result, FetchFailure)
    assert all("ConnectError" in a.error for a in result.attempts)
    assert (await resolver.resolve(f"ipfs://{CID}", token_id=5)).name == "NFT #5"


async def test_plain_web_uri_is_fetched_directly():
    script = GatewayScript(**{"example.com": make_metadata_json(9)})
    meta = await _resolver(script).resolve("https://example.com/token/9.json")
    assert meta.name == "Token 9"
    assert script.requests == ["https://example.com/token/9.json"]


async def test_empty_uri_makes_no_requests():
    script = GatewayScript()
    meta = await _resolver(script).resolve("", token_id=3)
    assert meta.error
    assert meta.name == "NFT #3"
    assert script.requests == []


# ── Cache and batch ──────────────────────────────────────────────


async def test_successful_results_are_cached_per_token():
    script = GatewayScript(**{"gw-one.test": make_metadata_json(1)})
    resolver = _resolver(script)
    uri = f"ipfs://{CID}/1.json"

    first = await resolver.resolve_token(1, uri)
    second = await resolver.resolve_token(1, uri)
    assert first is second
    assert len(script.requests) == 1

    resolver.clear_cache()
    await resolver.resolve_token(1, uri)
    assert len(script.requests) == 2


async def test_changed_uri_bypasses_cache():
    script = GatewayScript(**{"gw-one.test": make_metadata_json(1)})
    resolver = _resolver(script)
    await resolver.resolve_token(1, f"ipfs://{CID}/1.json")
    await resolver.resolve_token(1, f"ipfs://{CID}/1-v2.json")
    assert len(script.requests) == 2


async def test_degraded_results_are_not_cached():
    script = GatewayScript()
    resolver = MetadataResolver(
        gateways=TEST_GATEWAYS[:1], timeout=0.2, transport=httpx.MockTransport(script),
    )
    await resolver.resolve_token(1, f"ipfs://{CID}")
    await resolver.resolve_token(1, f"ipfs://{CID}")
    assert len(script.requests) == 2


async def test_resolve_many_isolates_failures():
    def handler(request):
        if request.url.path.endswith("/2.json"):
            return httpx.Response(500)
        token = request.url.path.rsplit("/", 1)[-1].split(".")[0]
        return httpx.Response(200, json=make_metadata_json(int(token)))

    resolver = MetadataResolver(
        gateways=TEST_GATEWAYS[:1], timeout=0.2, max_concurrent=2,
        transport=httpx.MockTransport(handler),
    )
    tokens = [(t, f"ipfs://{CID}/{t}.json") for t in (1, 2, 3)]
    results = await resolver.resolve_many(tokens)

    assert results[1].name == "Token 1"
    assert results[2].error
    assert results[2].name == "NFT #2"
    assert results[3].name == "Token 3"
