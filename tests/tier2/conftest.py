"""Tier 2 fixtures: local HTTP gateways serving token metadata."""

from __future__ import annotations

import asyncio
import json

import pytest
from aiohttp import web

from nft_bridge.ipfs.resolver import MetadataResolver

from tests.factories import make_metadata_json


async def _serve(app: web.Application):
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}"


@pytest.fixture
async def gateway_server():
    """One local server exposing several gateway personalities.

    ``{base}/good/ipfs/...``        JSON with the right content type
    ``{base}/mislabeled/ipfs/...``  JSON served as text/plain
    ``{base}/broken/ipfs/...``      HTTP 500
    ``{base}/slow/ipfs/...``        answers after 2 seconds
    ``{base}/html/ipfs/...``        an HTML error page with status 200

    Yields (base_url, hits) where ``hits`` lists every path requested.
    """
    hits: list[str] = []

    def _token_id(request: web.Request) -> int:
        name = request.match_info["path"].rsplit("/", 1)[-1]
        return int(name.split(".")[0]) if name.split(".")[0].isdigit() else 0

    async def good(request):
        hits.append(request.path)
        return web.json_response(make_metadata_json(_token_id(request)))

    async def mislabeled(request):
        hits.append(request.path)
        body = json.dumps(make_metadata_json(_token_id(request)))
        return web.Response(text=body, content_type="text/plain")

    async def broken(request):
        hits.append(request.path)
        return web.Response(status=500, text="internal error")

    async def slow(request):
        hits.append(request.path)
        await asyncio.sleep(2)
        return web.json_response(make_metadata_json(_token_id(request)))

    async def html(request):
        hits.append(request.path)
        return web.Response(text="<html><body>429 Too Many Requests</body></html>",
                            content_type="text/html")

    app = web.Application()
    app.router.add_get("/good/ipfs/{path:.*}", good)
    app.router.add_get("/mislabeled/ipfs/{path:.*}", mislabeled)
    app.router.add_get("/broken/ipfs/{path:.*}", broken)
    app.router.add_get("/slow/ipfs/{path:.*}", slow)
    app.router.add_get("/html/ipfs/{path:.*}", html)

    runner, base = await _serve(app)
    yield base, hits
    await runner.cleanup()


@pytest.fixture
def make_resolver(gateway_server):
    """Build a resolver over the named personalities, in order."""
    base, _ = gateway_server

    def _make(*names: str, timeout: float = 0.3) -> MetadataResolver:
        return MetadataResolver(
            gateways=[f"{base}/{name}/ipfs/" for name in names], timeout=timeout,
        )

    return _make
