"""Main entry point for the arbitrage watcher."""

import asyncio
import json
import signal
import sys
from typing import Optional

import click
from dotenv import load_dotenv
from loguru import logger

from .config import Config, EngineConfig, LoggingConfig, STRATEGIES, get_config
from .core.engine import ArbitrageEngine
from .core.errors import ArbWatchError, InvalidSymbol
from .core.symbols import split_symbol, to_exchange_format
from .exchanges.factory import ExchangeFactory
from .server import create_app, start_server

CONSOLE_FORMAT = ("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
                  "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(logging_config: LoggingConfig, level: Optional[str] = None) -> None:
    """Replace loguru's default sink with console and optional file sinks."""
    logger.remove()
    logger.add(sys.stderr, level=(level or logging_config.level).upper(), format=CONSOLE_FORMAT)
    if logging_config.file:
        logger.add(logging_config.file, level="DEBUG", format=FILE_FORMAT,
                   rotation="10 MB", retention=5, serialize=logging_config.serialize)


def load_config(config_path: Optional[str], strategy: Optional[str] = None,
                interval: Optional[float] = None, port: Optional[int] = None) -> Config:
    """Load configuration and apply command line overrides."""
    config = get_config(config_path)

    if strategy is not None or interval is not None:
        config.engine = EngineConfig(
            strategy=strategy or config.engine.strategy,
            interval_seconds=interval if interval is not None else config.engine.interval_seconds,
            autostart=config.engine.autostart,
        )
    if port is not None:
        config.server.port = port
    return config


def log_startup_banner(config: Config, engine: ArbitrageEngine) -> None:
    """Log the effective setup; credentials are reported as present or not, never shown."""
    logger.info("Arbitrage watcher starting")
    logger.info(f"Strategy: {config.engine.strategy} (autostart={config.engine.autostart})")
    logger.info(f"Interval: {config.engine.interval_seconds}s")
    if config.engine.strategy == "triangular":
        logger.info(f"Triangle on {config.triangle.exchange}: {', '.join(config.triangle.pairs)}")
        logger.info(f"Min profit: {config.detector.min_triangular_profit_pct}%")
    else:
        logger.info(f"Pair: {config.inter_exchange.symbol} "
                    f"{config.exchanges.left} <-> {config.exchanges.right}")
        logger.info(f"Investment: ${config.inter_exchange.investment_usd:,.2f}, "
                    f"transfer fee: ${config.fees.flat_transfer_fee_usd:,.2f}")
        logger.info(f"Min profit: {config.detector.min_inter_exchange_profit_pct}%")

    for name in engine.exchanges:
        if name in config.exchanges.simulated:
            state = "simulated"
        elif config.exchanges.get_account(name).is_configured:
            state = "credentials configured"
        else:
            state = "credentials not configured (public data only)"
        logger.info(f"Exchange {name}: {state}")

    if config.server.enable_status_http:
        logger.info(f"Status server port: {config.server.port}")


async def run_watcher(config: Config, serve: bool = True) -> None:
    """Run engine and status server until SIGINT/SIGTERM."""
    engine = ArbitrageEngine(config)
    log_startup_banner(config, engine)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises KeyboardInterrupt
            pass

    runner = None
    try:
        if serve:
            runner = await start_server(create_app(engine, config), config.server.host, config.server.port)

        if config.engine.autostart or not serve:
            await engine.start()
        else:
            logger.info("Autostart disabled; POST /engine/start to begin polling")

        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        if runner is not None:
            await runner.cleanup()
        await engine.close()


async def run_single_cycle(config: Config):
    """Run one cycle; returns the engine so callers can inspect its state."""
    engine = ArbitrageEngine(config)
    try:
        await engine.run_cycle()
    finally:
        await engine.close()
    return engine


async def read_balances(exchange_name: str, config: Config):
    """Read balances through a freshly built exchange client."""
    exchange = ExchangeFactory.create_exchange(exchange_name, config)
    try:
        if not await exchange.connect():
            raise ArbWatchError(f"Could not connect to {exchange_name}")
        return await exchange.fetch_balances()
    finally:
        await exchange.disconnect()


@click.group()
def cli():
    """Arbitrage opportunity watcher CLI."""
    load_dotenv()


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml, else environment)')
@click.option('--strategy', type=click.Choice(STRATEGIES), default=None,
              help='Override the configured strategy')
@click.option('--interval', type=float, default=None, help='Polling interval in seconds')
@click.option('--port', type=int, default=None, help='Status server port')
@click.option('--no-server', is_flag=True, help='Do not start the status server')
def run(config_path, strategy, interval, port, no_server):
    """Poll quotes and evaluate spreads until interrupted."""
    try:
        config = load_config(config_path, strategy, interval, port)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(2)

    setup_logging(config.logging)
    serve = config.server.enable_status_http and not no_server

    try:
        asyncio.run(run_watcher(config, serve=serve))
    except KeyboardInterrupt:
        logger.info("Watcher stopped by user")
    except Exception as e:
        logger.error(f"Watcher failed: {e}")
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file')
@click.option('--strategy', type=click.Choice(STRATEGIES), default=None,
              help='Override the configured strategy')
def check(config_path, strategy):
    """Run a single cycle and print the result as JSON."""
    try:
        config = load_config(config_path, strategy)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(2)

    setup_logging(config.logging, level="WARNING")
    engine = asyncio.run(run_single_cycle(config))

    if engine.latest_result is None:
        click.echo(json.dumps({"error": engine.last_error}), err=True)
        sys.exit(1)
    click.echo(json.dumps(engine.get_latest_result(), indent=2))


@cli.command()
@click.argument('exchange')
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file')
def balances(exchange, config_path):
    """Show account balances for EXCHANGE."""
    config = load_config(config_path)
    setup_logging(config.logging, level="WARNING")

    try:
        result = asyncio.run(read_balances(exchange, config))
    except ArbWatchError as e:
        click.echo(f"Error: {type(e).__name__}: {e}", err=True)
        sys.exit(1)

    if not result:
        click.echo(f"No balances on {exchange}")
        return
    for asset, balance in sorted(result.items()):
        click.echo(f"{asset:<8} free={balance.free:<16.8f} locked={balance.locked:.8f}")


@cli.command()
@click.argument('symbols', nargs=-1, required=True)
def normalize(symbols):
    """Print unified and exchange-native forms of SYMBOLS."""
    failed = False
    for symbol in symbols:
        try:
            base, quote = split_symbol(symbol)
        except InvalidSymbol as e:
            click.echo(f"{symbol}: {e}", err=True)
            failed = True
            continue
        click.echo(f"{symbol}: {base}/{quote} {to_exchange_format(symbol)}")

    if failed:
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
