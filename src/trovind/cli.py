import asyncio
import dataclasses
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from trovind.abi_events import build_decoding_table
from trovind.clients.price_feed import PriceFeedReader
from trovind.clients.rpc import RPC
from trovind.core.config import IndexerConfig, load_config
from trovind.core.errors import ConfigError, PriceUnavailable, TransientFetchError
from trovind.core.models import PositionStatus, format_amount
from trovind.core.use_cases.census import collect_census
from trovind.core.use_cases.metrics import compute_system_metrics
from trovind.logging_setup import configure_logging
from trovind.orchestration.orchestrator import close_store, open_store, run_indexer

logger = logging.getLogger(__name__)
console = Console()


def _config(ctx: click.Context, **overrides) -> IndexerConfig:
    """Load the config file from the group options and apply non-None overrides."""
    try:
        config = load_config(ctx.obj["config_path"])
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(config, **changes) if changes else config
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON config file (defaults apply when omitted)",
)
@click.option("--log-level", default="INFO", show_default=True, help="Root log level")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str) -> None:
    """Trovind: trove position indexer for EVM lending protocols."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command("run")
@click.option("--rpc", "rpc_url", default=None, help="RPC endpoint URL")
@click.option("--start-block", type=int, default=None, help="First block to index")
@click.option("--batch-size", type=int, default=None, help="Blocks per batch")
@click.option("--poll-interval", "poll_interval_s", type=float, default=None, help="Seconds between head polls when idle")
@click.option("--store", type=click.Choice(["duckdb", "memory"]), default=None)
@click.option("--db-path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--manifest", "manifest_path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--max-iterations", type=int, default=None, help="Stop after N scheduler steps")
@click.pass_context
def run_cmd(
    ctx: click.Context,
    rpc_url: str | None,
    start_block: int | None,
    batch_size: int | None,
    poll_interval_s: float | None,
    store: str | None,
    db_path: Path | None,
    manifest_path: Path | None,
    max_iterations: int | None,
) -> None:
    """Tail the ledger and keep positions up to date."""
    config = _config(
        ctx,
        rpc_url=rpc_url,
        start_block=start_block,
        batch_size=batch_size,
        poll_interval_s=poll_interval_s,
        store=store,
        db_path=db_path,
        manifest_path=manifest_path,
    )
    try:
        stats = asyncio.run(run_indexer(config, max_iterations=max_iterations))
    except KeyboardInterrupt:
        console.print("[yellow]interrupted[/]")
        return
    console.print(
        f"[bold]summary[/]: "
        f"[green]batches[/]={stats.batches}  "
        f"logs={stats.logs}  "
        f"[green]folded[/]={stats.folded}  "
        f"[red]rejected[/]={stats.rejected}  "
        f"[yellow]skipped[/]={stats.skipped}  "
        f"retries={stats.retries}"
    )


@cli.command("census")
@click.option("--from-block", type=int, required=True)
@click.option("--to-block", type=int, required=True)
@click.option("--step", type=int, default=1_000, show_default=True, help="Blocks per request")
@click.option("--rpc", "rpc_url", default=None, help="RPC endpoint URL")
@click.pass_context
def census_cmd(ctx: click.Context, from_block: int, to_block: int, step: int, rpc_url: str | None) -> None:
    """Count emitted topic0s per watched contract and check them against the decoding table."""
    if to_block < from_block:
        raise click.UsageError("--to-block must be >= --from-block")
    config = _config(ctx, rpc_url=rpc_url)
    table = build_decoding_table(config.contracts)

    async def run():
        rpc = RPC(config.rpc_url, timeout_s=config.timeout_s)
        try:
            return await collect_census(
                rpc, config.addresses, table, from_block=from_block, to_block=to_block, step=step
            )
        finally:
            await rpc.aclose()

    try:
        rows = asyncio.run(run())
    except TransientFetchError as e:
        raise click.ClickException(str(e)) from e

    out = Table(title=f"events in blocks {from_block:,}-{to_block:,}")
    out.add_column("topic0")
    out.add_column("event")
    out.add_column("count", justify="right")
    out.add_column("addresses")
    out.add_column("decodable")
    for row in rows:
        out.add_row(
            row.topic0,
            row.event or "-",
            str(row.count),
            "\n".join(row.addresses),
            "[green]yes[/]" if row.resolved else "[red]no[/]",
        )
    console.print(out)
    console.print(f"[bold]total[/]: {sum(r.count for r in rows)} logs, {len(rows)} signatures")


@cli.command("positions")
@click.option("--status", type=click.Choice([s.value for s in PositionStatus]), default=None)
@click.option("--db-path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--json", "as_json", is_flag=True, help="Print position documents as JSON lines")
@click.pass_context
def positions_cmd(ctx: click.Context, status: str | None, db_path: Path | None, as_json: bool) -> None:
    """List persisted positions."""
    config = _config(ctx, db_path=db_path)
    store = open_store(config)
    try:
        positions = store.list_positions(PositionStatus(status) if status else None)
    finally:
        close_store(store)

    if as_json:
        for p in positions:
            click.echo(json.dumps(p.to_document()))
        return

    out = Table(title=f"{len(positions)} positions")
    for col in ("id", "wallet", "asset", "coll", "debt", "nltv %", "status", "block", "events"):
        out.add_column(col, justify="right" if col in ("id", "block", "events") else "left")
    for p in positions:
        out.add_row(
            str(p.position_id),
            p.wallet_address,
            p.asset,
            format_amount(p.coll),
            format_amount(p.debt),
            str(p.nltv),
            p.status.value,
            str(p.block_number),
            str(len(p.history)),
        )
    console.print(out)


@cli.command("metrics")
@click.option("--db-path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--rpc", "rpc_url", default=None, help="RPC endpoint URL")
@click.option("--asset", default=None, help="Collateral asset (defaults to the oracle asset)")
@click.pass_context
def metrics_cmd(ctx: click.Context, db_path: Path | None, rpc_url: str | None, asset: str | None) -> None:
    """Read the collateral price and print totals for that collateral."""
    config = _config(ctx, db_path=db_path, rpc_url=rpc_url)
    asset = (asset or config.oracle.asset).lower()

    async def read_price():
        rpc = RPC(config.rpc_url, timeout_s=config.timeout_s)
        try:
            return await PriceFeedReader(rpc, config.oracle).read_price(asset)
        finally:
            await rpc.aclose()

    try:
        price = asyncio.run(read_price())
    except PriceUnavailable as e:
        raise click.ClickException(str(e)) from e

    store = open_store(config)
    try:
        metrics = compute_system_metrics(store.list_positions(), price, asset=asset)
    finally:
        close_store(store)

    out = Table(title=f"system metrics {asset}", show_header=False)
    out.add_column("metric")
    out.add_column("value", justify="right")
    out.add_row("price", f"{format_amount(metrics.price)}{' (frozen)' if metrics.price_frozen else ''}")
    out.add_row("total coll", format_amount(metrics.total_coll))
    out.add_row("total debt", format_amount(metrics.total_debt))
    out.add_row("coll value", format_amount(metrics.coll_value))
    out.add_row("TCR", format_amount(metrics.tcr))
    for s, n in metrics.counts.items():
        out.add_row(f"{s.value} positions", str(n))
    console.print(out)


@cli.command("oracle")
@click.option("--rpc", "rpc_url", default=None, help="RPC endpoint URL")
@click.option("--asset", default=None, help="Collateral asset (defaults to the oracle asset)")
@click.pass_context
def oracle_cmd(ctx: click.Context, rpc_url: str | None, asset: str | None) -> None:
    """Print the price feed's oracle record and cached price record."""
    config = _config(ctx, rpc_url=rpc_url)
    asset = (asset or config.oracle.asset).lower()

    async def read_records():
        rpc = RPC(config.rpc_url, timeout_s=config.timeout_s)
        reader = PriceFeedReader(rpc, config.oracle)
        try:
            try:
                status = await reader.oracle_status(asset)
            except PriceUnavailable as e:
                logger.warning("oracleRecords read failed asset=%s: %s", asset, e)
                status = None
            return status, await reader.price_record(asset)
        finally:
            await rpc.aclose()

    try:
        status, record = asyncio.run(read_records())
    except PriceUnavailable as e:
        raise click.ClickException(str(e)) from e

    out = Table(title=f"oracle {asset}", show_header=False)
    out.add_column("field")
    out.add_column("value", justify="right")
    if status is None:
        out.add_row("oracle status", "unavailable")
    else:
        out.add_row("chainlink oracle", status.chainlink_oracle)
        out.add_row("feed working", str(status.is_feed_working))
        out.add_row("heartbeat", str(status.heartbeat))
        out.add_row("decimals", str(status.decimals))
        out.add_row("eth indexed", str(status.is_eth_indexed))
    out.add_row("scaled price", str(record.scaled_price))
    out.add_row("timestamp", str(record.timestamp))
    out.add_row("last updated", str(record.last_updated))
    out.add_row("round id", str(record.round_id))
    console.print(out)

if __name__ == "__main__":
    cli()
