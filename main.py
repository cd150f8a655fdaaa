#!/usr/bin/env python3
"""
Polymarket wallet P&L cards, tracked-wallet feeds and whale alerts.

Usage:
    python main.py pnl-card 0x6ac5bb06a9eb05641fd5e82640268b92f3ab4b6e --days 30
    python main.py wallet 0x6ac5bb06a9eb05641fd5e82640268b92f3ab4b6e
    python main.py feed 0xabc... 0xdef... --lookback 60 --watch 30
    python main.py whales --threshold 5000 --cap 100
    python main.py leaderboard --period WEEKLY --metric VOLUME --limit 25
    python main.py new-markets --out ./out/new_markets.csv
"""
import logging
import sys
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

import click

from polywatch import Polywatch, load_config
from polywatch.errors import FetchError, ValidationError
from polywatch.shared.scoring import compute_confidence, today_action
from polywatch.utils.storage import dumps, save_records

logger = logging.getLogger("polywatch")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def emit(payload, out: Optional[Path]) -> None:
    click.echo(dumps(payload))
    if out:
        save_records(payload, out)
        click.echo(f"💾 Saved to: {out}", err=True)


def poll(watch: Optional[int], run_once: Callable[[], None]) -> None:
    """Run once, or every ``watch`` seconds until interrupted."""
    if not watch:
        run_once()
        return
    try:
        while True:
            run_once()
            time.sleep(watch)
    except KeyboardInterrupt:
        click.echo("\n⚠️  Polling stopped by user", err=True)


out_option = click.option(
    "--out",
    type=click.Path(path_type=Path),
    default=None,
    help="Also save the result to a .json or .csv file",
)


@click.group()
@click.version_option(version="1.0.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Polymarket wallet analytics from the public data API."""
    if ctx.obj is None:
        config = load_config()
        setup_logging("DEBUG" if verbose else config.log_level)
        ctx.obj = Polywatch(config)
        ctx.call_on_close(ctx.obj.close)
    elif verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command("pnl-card")
@click.argument("address")
@click.option("--days", type=int, default=None, help="Activity window in days (1-3650, default 30)")
@out_option
@click.pass_obj
def pnl_card(app: Polywatch, address: str, days: Optional[int], out: Optional[Path]):
    """P&L card for one wallet."""
    try:
        summary = app.wallets.summarize(address, window_days=days)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="ADDRESS")
    emit(summary, out)


@cli.command()
@click.argument("address")
@out_option
@click.pass_obj
def wallet(app: Polywatch, address: str, out: Optional[Path]):
    """Quick snapshot: equity, open P&L and 24h volume."""
    try:
        snapshot = app.wallets.snapshot(address)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="ADDRESS")
    emit(snapshot, out)


@cli.command()
@click.argument("addresses", nargs=-1, required=True)
@click.option("--lookback", type=int, default=None, help="Lookback in minutes (default 60)")
@click.option("--watch", type=int, default=None, help="Re-poll every N seconds")
@out_option
@click.pass_obj
def feed(app: Polywatch, addresses: Tuple[str, ...], lookback: Optional[int], watch: Optional[int], out: Optional[Path]):
    """Merged recent trades for tracked wallets, newest first.

    Each ADDRESS may carry a label: 0xabc...=whale
    """
    wallets = []
    for raw in addresses:
        address, _, label = raw.partition("=")
        wallets.append({"address": address, "label": label})

    def run_once():
        result = app.feed.build(wallets, lookback_minutes=lookback)
        if result.wallets_rejected:
            click.echo(f"⚠️  Ignored invalid addresses: {', '.join(result.wallets_rejected)}", err=True)
        if result.wallets_failed:
            click.echo(f"⚠️  No data for: {', '.join(result.wallets_failed)}", err=True)
        emit(result.entries, out)

    poll(watch, run_once)


@cli.command()
@click.option("--threshold", type=float, default=None, help="Minimum trade notional in USD")
@click.option("--cap", type=int, default=None, help="Maximum alerts returned")
@click.option("--watch", type=int, default=None, help="Re-poll every N seconds")
@out_option
@click.pass_obj
def whales(app: Polywatch, threshold: Optional[float], cap: Optional[int], watch: Optional[int], out: Optional[Path]):
    """Recent trades above a USD threshold."""
    def run_once():
        scan = app.whales.scan(threshold_usd=threshold, cap_count=cap)
        click.echo(dumps(scan))
        if out:
            save_records(scan.whales, out)

    poll(watch, run_once)


@cli.command()
@click.option(
    "--period",
    type=click.Choice(["TODAY", "WEEKLY", "MONTHLY", "ALL"], case_sensitive=False),
    default="ALL",
)
@click.option("--metric", type=click.Choice(["PNL", "VOLUME"], case_sensitive=False), default="PNL")
@click.option("--limit", type=int, default=100)
@out_option
@click.pass_obj
def leaderboard(app: Polywatch, period: str, metric: str, limit: int, out: Optional[Path]):
    """Top traders by P&L or volume."""
    try:
        entries = app.leaderboard.top(period, metric, limit)
    except FetchError as e:
        click.echo(f"❌ Leaderboard unavailable: {e}", err=True)
        sys.exit(1)
    emit(entries, out)


@cli.command("new-markets")
@out_option
@click.pass_obj
def new_markets(app: Polywatch, out: Optional[Path]):
    """Markets created in the last few hours (sports and up/down excluded)."""
    try:
        markets = app.new_markets.scan()
    except FetchError as e:
        click.echo(f"❌ Gamma unavailable: {e}", err=True)
        sys.exit(1)
    emit(markets, out)


@cli.command()
@click.option("--liquidity", type=float, required=True, help="Market liquidity in USD")
@click.option("--volume", type=float, required=True, help="24h volume in USD")
@click.option("--volatility", type=float, required=True, help="24h volatility as a fraction (0.12 = 12%)")
def confidence(liquidity: float, volume: float, volatility: float):
    """Market confidence score (0-100)."""
    click.echo(dumps({"confidence": compute_confidence(liquidity, volume, volatility)}))


@cli.command()
@click.option("--whale-index", type=float, required=True, help="Whale activity 0-100")
@click.option("--confidence", "avg_confidence", type=float, required=True, help="Average confidence 0-100")
@click.option("--volatility", type=float, required=True, help="Average volatility as a fraction")
def stance(whale_index: float, avg_confidence: float, volatility: float):
    """Suggested stance for the day from market-wide signals."""
    action = today_action(whale_index, avg_confidence, volatility)
    click.echo(dumps({
        "label": action.label,
        "description": action.description,
        "whaleIndex": whale_index,
        "avgConfidence": avg_confidence,
        "avgVolatility": volatility,
    }))


if __name__ == "__main__":
    cli()
