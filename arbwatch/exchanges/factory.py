"""Exchange factory building venue clients from configuration."""

from typing import Dict, Iterable
from loguru import logger

from .base import BaseExchange
from .ccxt_exchange import CcxtExchange
from .simulated import SimulatedExchange


class ExchangeFactory:
    """Creates exchange clients; no client is shared through module state."""

    @staticmethod
    def create_exchange(name: str, config) -> BaseExchange:
        """Create an exchange client for a venue name."""
        name = name.lower()

        if name in config.exchanges.simulated:
            logger.info(f"Creating simulated exchange: {name}")
            return SimulatedExchange(name, {
                "base_prices": config.simulation.base_prices,
                "jitter": config.simulation.jitter,
                "spread": config.simulation.spread,
                "seed": config.simulation.seed,
                "quote_assets": config.symbols.quote_assets,
            })

        account = config.exchanges.get_account(name)
        logger.info(f"Creating ccxt exchange: {name} "
                    f"(credentials {'configured' if account.is_configured else 'not configured'})")
        return CcxtExchange(name, {
            "api_key": account.key,
            "secret": account.secret,
            "password": account.password,
            "sandbox": account.sandbox,
            "timeout_ms": config.exchanges.timeout_ms,
            "max_retries": config.retry.max_retries,
            "base_delay": config.retry.base_delay_seconds,
            "quote_assets": config.symbols.quote_assets,
        })

    @staticmethod
    def create_exchanges(names: Iterable[str], config) -> Dict[str, BaseExchange]:
        """Create one client per distinct venue name."""
        exchanges = {}
        for name in names:
            if name.lower() not in exchanges:
                exchanges[name.lower()] = ExchangeFactory.create_exchange(name, config)
        return exchanges
