"""Polling engine: fetches quotes on a fixed interval and evaluates spreads."""

import asyncio
import time
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger

from .detector import ArbitrageDetector
from .errors import ArbWatchError, UpstreamUnavailable
from .types import OpportunityResult
from ..exchanges.base import BaseExchange
from ..exchanges.factory import ExchangeFactory


class EngineState(Enum):
    """Run state of the polling engine."""
    STOPPED = "stopped"
    RUNNING = "running"


class ArbitrageEngine:
    """Runs one evaluation per interval and keeps the latest result.

    A cycle is a pure function of the quotes it fetched. A failed cycle is
    logged and counted, and the previous result stays in place.
    """

    def __init__(self, config, exchanges: Optional[Dict[str, BaseExchange]] = None,
                 detector: Optional[ArbitrageDetector] = None):
        self.config = config
        self.strategy = config.engine.strategy
        self.interval = config.engine.interval_seconds
        self.detector = detector or ArbitrageDetector(config)

        if exchanges is None:
            venues = [config.triangle.exchange, config.exchanges.left, config.exchanges.right]
            exchanges = ExchangeFactory.create_exchanges(venues, config)
        self.exchanges = exchanges

        self.state = EngineState.STOPPED
        self.latest_result: Optional[OpportunityResult] = None
        self.last_error: Optional[str] = None
        self.last_cycle_at: Optional[int] = None
        self.started_at: Optional[int] = None
        self.cycles = 0
        self.failed_cycles = 0
        self.opportunities = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.state == EngineState.RUNNING

    def required_exchanges(self) -> List[str]:
        """Venues the configured strategy reads from."""
        if self.strategy == "triangular":
            return [self.config.triangle.exchange]
        return [self.config.exchanges.left, self.config.exchanges.right]

    def _symbols_for(self, exchange: str) -> List[str]:
        if self.strategy == "triangular":
            if exchange == self.config.triangle.exchange:
                return list(self.config.triangle.pairs)
            return []
        return [self.config.inter_exchange.symbol]

    async def get_exchange(self, name: str) -> BaseExchange:
        """Connected client for a venue; KeyError if it is not configured.

        Symbol and credential faults raised by ``connect`` propagate as is.
        """
        exchange = self.exchanges[name.lower()]
        if not exchange.is_connected():
            if not await exchange.connect(self._symbols_for(name.lower())):
                raise UpstreamUnavailable(f"{name} is not ready")
        return exchange

    async def start(self) -> bool:
        """Start polling. Returns False if already running."""
        if self.running:
            return False

        logger.info(f"Starting arbitrage engine: strategy={self.strategy}, interval={self.interval}s, "
                    f"venues={self.required_exchanges()}")
        self.state = EngineState.RUNNING
        self.started_at = int(time.time() * 1000)
        self._task = asyncio.create_task(self._run_loop())
        return True

    async def stop(self) -> bool:
        """Stop polling; an in-flight cycle is discarded. Returns False if not running."""
        if not self.running:
            return False

        logger.info("Stopping arbitrage engine")
        self.state = EngineState.STOPPED
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        logger.info("Arbitrage engine stopped")
        return True

    async def close(self) -> None:
        """Stop and release every exchange client."""
        await self.stop()
        for name, exchange in self.exchanges.items():
            try:
                await exchange.disconnect()
            except Exception as e:
                logger.error(f"Error disconnecting {name}: {e}")

    async def _run_loop(self):
        """Main polling loop."""
        while self.running:
            try:
                await self.run_cycle()
            except Exception as e:
                self.failed_cycles += 1
                self.last_error = f"{type(e).__name__}: {e}"
                logger.exception(f"Unexpected error in polling loop: {e}")

            await asyncio.sleep(self.interval)

    async def run_cycle(self) -> Optional[OpportunityResult]:
        """Run one evaluation; None if the cycle was aborted."""
        self.cycles += 1
        self.last_cycle_at = int(time.time() * 1000)
        logger.info(f"Cycle {self.cycles}: looking for {self.strategy} opportunities...")

        try:
            if self.strategy == "triangular":
                result = await self._evaluate_triangular()
            else:
                result = await self._evaluate_inter_exchange()
        except UpstreamUnavailable as e:
            self._record_failure(e)
            logger.warning(f"Quote source unavailable, skipping cycle {self.cycles}: {e}")
            return None
        except ArbWatchError as e:
            self._record_failure(e)
            logger.error(f"Cycle {self.cycles} aborted: {type(e).__name__}: {e}")
            return None

        self.latest_result = result
        self.last_error = None
        if result.profitable:
            self.opportunities += 1
        return result

    def _record_failure(self, error: Exception) -> None:
        self.failed_cycles += 1
        self.last_error = f"{type(error).__name__}: {error}"

    async def _evaluate_triangular(self) -> OpportunityResult:
        exchange = await self.get_exchange(self.config.triangle.exchange)
        quotes = await exchange.fetch_quotes(self.config.triangle.pairs)
        return self.detector.evaluate_triangular(quotes)

    async def _evaluate_inter_exchange(self) -> OpportunityResult:
        symbol = self.config.inter_exchange.symbol
        left, right = await asyncio.gather(
            self.get_exchange(self.config.exchanges.left),
            self.get_exchange(self.config.exchanges.right),
        )
        left_quote, right_quote = await asyncio.gather(
            left.fetch_quote(symbol),
            right.fetch_quote(symbol),
        )
        return self.detector.evaluate_inter_exchange(left_quote, right_quote)

    def get_latest_result(self) -> Dict[str, Any]:
        """Latest result as JSON-ready dict, or an explicit no-data marker."""
        if self.latest_result is None:
            return {"status": "no_data"}
        return self.latest_result.to_dict()

    def get_status(self) -> Dict[str, Any]:
        """Get engine status."""
        return {
            'state': self.state.value,
            'running': self.running,
            'strategy': self.strategy,
            'interval_seconds': self.interval,
            'started_at': self.started_at,
            'cycles': self.cycles,
            'failed_cycles': self.failed_cycles,
            'opportunities': self.opportunities,
            'last_cycle_at': self.last_cycle_at,
            'last_error': self.last_error,
            'has_result': self.latest_result is not None,
            'exchanges': {
                name: {
                    'connected': exchange.is_connected(),
                    'last_update': exchange.get_last_update(),
                }
                for name, exchange in self.exchanges.items()
            },
        }
