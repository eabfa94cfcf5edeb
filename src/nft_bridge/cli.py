"""CLI entry point - read-only diagnostics against a marketplace deployment."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from nft_bridge.chain.gateway import ContractGateway
from nft_bridge.config import load_config
from nft_bridge.errors import MarketplaceError
from nft_bridge.ipfs.resolver import MetadataResolver, placeholder_metadata, validate_metadata
from nft_bridge.models.market import MarketItem
from nft_bridge.models.metadata import FetchSuccess
from nft_bridge.models.records import EmergencyState
from nft_bridge.policy.payment import PaymentResolver


def _short(address: str | None) -> str:
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"


def _require_contract(cfg):
    """Exit with error if no contract address is configured."""
    if not cfg.contract_address:
        click.echo("Error: No contract address configured.", err=True)
        click.echo("Set NFT_BRIDGE_CONTRACT_ADDRESS or contract_address in config.", err=True)
        sys.exit(1)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except MarketplaceError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _echo_item(item: MarketItem, payments: PaymentResolver) -> None:
    plan = payments.resolve(item)
    prices = ", ".join(f"{o.amount} {o.symbol}" for o in plan.options) or "not for sale"
    click.echo(f"#{item.token_id}")
    click.echo(f"  Seller:     {item.seller}")
    click.echo(f"  Owner:      {item.custodial_owner}")
    if item.actual_owner:
        click.echo(f"  Holder:     {item.actual_owner}")
    click.echo(f"  Prices:     {prices}")
    click.echo(f"  Sold:       {item.sold}")
    click.echo(f"  Listed at:  {item.listed_at.isoformat()}")
    click.echo(f"  Royalty:    {item.royalty_percentage / 100}% -> {_short(item.royalty_recipient)}")
    click.echo(f"  URI:        {item.token_uri or '(none)'}")


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """nft-bridge - inspect an NFT marketplace deployment."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show client configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Contract:   {cfg.contract_address or '(not set)'}")
    click.echo(f"USDC:       {cfg.usdc_address or '(not set)'}")
    click.echo(f"USDT:       {cfg.usdt_address or '(not set)'}")
    click.echo(f"Chain ID:   {cfg.chain_id}")
    click.echo(f"RPC URL:    {cfg.rpc_url}")
    click.echo(f"Account:    {cfg.account or '(not set)'}")
    click.echo(f"Key:        {'***configured***' if cfg.private_key else '(not set)'}")
    click.echo(f"Gateways:   {', '.join(cfg.metadata_gateways)}")


@cli.command()
@click.argument("token_id", type=int)
@click.pass_context
def item(ctx: click.Context, token_id: int) -> None:
    """Show one market item."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _item():
        gateway = ContractGateway(cfg)
        market_item = await gateway.get_market_item(token_id)
        market_item.token_uri = await gateway.get_token_uri(token_id)
        market_item.actual_owner = await gateway.owner_of(token_id)
        _echo_item(market_item, PaymentResolver(cfg))

    _run(_item())


@cli.command()
@click.pass_context
def listings(ctx: click.Context) -> None:
    """List active marketplace listings."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _listings():
        items = await ContractGateway(cfg).fetch_market_items()
        payments = PaymentResolver(cfg)
        click.echo(f"{len(items)} active listing(s)")
        for market_item in items:
            _echo_item(market_item, payments)

    _run(_listings())


@cli.command()
@click.argument("address")
@click.pass_context
def mine(ctx: click.Context, address: str) -> None:
    """List tokens ADDRESS owns, listed or held."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _mine():
        items = await ContractGateway(cfg).fetch_my_nfts(address)
        payments = PaymentResolver(cfg)
        click.echo(f"{len(items)} token(s) owned by {address}")
        for market_item in items:
            _echo_item(market_item, payments)
            click.echo(f"  Listed:     {market_item.is_listed}")

    _run(_mine())


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show token counts, fees and pause state."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _stats():
        gateway = ContractGateway(cfg)
        totals = await gateway.get_total_stats()
        click.echo(f"Tokens:       {totals.total_tokens}")
        click.echo(f"Sold:         {totals.total_sold}")
        click.echo(f"Listed:       {totals.total_listed}")
        click.echo(f"Listing fee:  {await gateway.get_listing_price()} ETH")
        click.echo(f"Platform fee: {await gateway.get_platform_fee_percentage() / 100}%")
        click.echo(f"Paused:       {await gateway.is_paused()}")

    _run(_stats())


@cli.command()
@click.pass_context
def emergency(ctx: click.Context) -> None:
    """Show the emergency-withdraw timelock state."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _emergency():
        status = await ContractGateway(cfg).get_emergency_withdraw_status()
        state = status.state()
        click.echo(f"State:      {state.value}")
        if state is not EmergencyState.INACTIVE:
            click.echo(f"Ready at:   {status.ready_at}")

    _run(_emergency())


@cli.command()
@click.argument("uri")
@click.option("--token-id", type=int, default=None, help="Token id for the placeholder name")
@click.pass_context
def metadata(ctx: click.Context, uri: str, token_id: int | None) -> None:
    """Resolve URI through the configured IPFS gateways."""
    cfg = load_config(ctx.obj["config_path"])

    async def _metadata():
        resolver = MetadataResolver(cfg.metadata_gateways, cfg.metadata_timeout)
        result = await resolver.fetch(uri)
        for attempt in result.attempts:
            outcome = "ok" if attempt.ok else attempt.error
            click.echo(f"  {attempt.url}: {outcome} ({attempt.duration_ms}ms)")
        if isinstance(result, FetchSuccess):
            meta = validate_metadata(result.data, original_uri=uri)
        else:
            meta = placeholder_metadata(uri, token_id)
        click.echo(f"Name:        {meta.name}")
        click.echo(f"Description: {meta.description}")
        click.echo(f"Image:       {meta.image}")
        click.echo(f"Collection:  {meta.collection}")
        click.echo(f"Degraded:    {meta.error}")
        for attr in meta.attributes:
            click.echo(f"  {attr.trait_type}: {attr.value}")

    _run(_metadata())
