"""Configuration management for the arbitrage watcher."""

import os
import re
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .core.symbols import SymbolMapper
from .core.types import FeeModel


STRATEGIES = ("triangular", "inter_exchange")

# ARBITRAGE_MODE values understood by Config.from_env -> (strategy, autostart)
RUN_MODES = {
    "INTRA_EXCHANGE": ("triangular", True),
    "INTER_EXCHANGE": ("inter_exchange", True),
    "WEB_ONLY": ("triangular", False),
}


class ExchangeAccount(BaseModel):
    """Exchange account configuration."""
    key: str = ""
    secret: str = ""
    password: Optional[str] = None
    sandbox: bool = False

    @field_validator("key", "secret", mode="before")
    @classmethod
    def _blank_if_missing(cls, value):
        return "" if value is None else value

    @property
    def is_configured(self) -> bool:
        return bool(self.key and self.secret)


class ExchangeConfig(BaseModel):
    """Exchange configuration."""
    left: str = "binance"
    right: str = "bitbex"
    # Venues without a public connector are served by the simulated exchange
    simulated: List[str] = Field(default_factory=lambda: ["bitbex"])
    accounts: Dict[str, ExchangeAccount] = Field(default_factory=dict)
    timeout_ms: int = 10000

    @field_validator("left", "right", mode="before")
    @classmethod
    def _lower_name(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("simulated", mode="before")
    @classmethod
    def _lower_simulated(cls, value):
        if isinstance(value, list):
            return [name.lower() if isinstance(name, str) else name for name in value]
        return value

    @field_validator("accounts", mode="before")
    @classmethod
    def _lower_accounts(cls, value):
        if isinstance(value, dict):
            return {str(name).lower(): account for name, account in value.items()}
        return value

    def get_account(self, exchange: str) -> ExchangeAccount:
        """Get account for an exchange, empty if not configured."""
        return self.accounts.get(exchange.lower(), ExchangeAccount())


class FeeConfig(BaseModel):
    """Fee configuration."""
    taker_bps: Dict[str, float] = Field(default_factory=lambda: {"default": 10.0})
    flat_transfer_fee_usd: float = 5.0

    @field_validator("taker_bps")
    @classmethod
    def _check_taker_bps(cls, value: Dict[str, float]) -> Dict[str, float]:
        for exchange, bps in value.items():
            if not 0 <= bps < 10000:
                raise ValueError(f"taker fee for {exchange} must be in [0, 10000) bps, got {bps}")
        return {exchange.lower(): bps for exchange, bps in value.items()}

    @field_validator("flat_transfer_fee_usd")
    @classmethod
    def _check_transfer_fee(cls, value: float) -> float:
        if value < 0:
            raise ValueError("flat_transfer_fee_usd must be non-negative")
        return value


class SymbolConfig(BaseModel):
    """Symbol normalization configuration."""
    quote_assets: List[str] = Field(default_factory=list)  # empty = built-in table


class TriangleConfig(BaseModel):
    """Triangular arbitrage configuration."""
    exchange: str = "binance"
    start_asset: str = "USDT"
    pairs: List[str] = Field(default_factory=lambda: ["BTC/USDT", "ETH/BTC", "ETH/USDT"])
    both_directions: bool = True

    @field_validator("exchange", mode="before")
    @classmethod
    def _lower_exchange(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("pairs")
    @classmethod
    def _check_pairs(cls, value: List[str]) -> List[str]:
        if len(value) != 3:
            raise ValueError(f"a triangle needs exactly 3 pairs, got {len(value)}")
        return value


class InterExchangeConfig(BaseModel):
    """Inter-exchange arbitrage configuration."""
    symbol: str = "BTC/USDT"
    investment_usd: float = 1000.0

    @field_validator("investment_usd")
    @classmethod
    def _check_investment(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("investment_usd must be positive")
        return value


class DetectorConfig(BaseModel):
    """Opportunity thresholds, in percent."""
    min_triangular_profit_pct: float = 0.05
    min_inter_exchange_profit_pct: float = 0.5

    @model_validator(mode="after")
    def _check_thresholds(self) -> "DetectorConfig":
        # The inter-exchange edge also pays for a cross-venue transfer
        if self.min_inter_exchange_profit_pct <= self.min_triangular_profit_pct:
            raise ValueError("min_inter_exchange_profit_pct must exceed min_triangular_profit_pct")
        return self


class EngineConfig(BaseModel):
    """Polling engine configuration."""
    strategy: str = "triangular"
    interval_seconds: float = 5.0
    autostart: bool = True

    @field_validator("strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        value = value.lower()
        if value not in STRATEGIES:
            raise ValueError(f"unknown strategy {value!r}, expected one of {STRATEGIES}")
        return value

    @field_validator("interval_seconds")
    @classmethod
    def _check_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval_seconds must be positive")
        return value


class RetryConfig(BaseModel):
    """Retry-with-backoff configuration for network calls."""
    max_retries: int = 3
    base_delay_seconds: float = 0.5


class SimulationConfig(BaseModel):
    """Simulated venue configuration."""
    base_prices: Dict[str, float] = Field(default_factory=lambda: {
        "BTC/USDT": 60000.0,
        "ETH/USDT": 3000.0,
        "ETH/BTC": 0.05,
    })
    jitter: float = 0.0002  # max relative offset from base price per quote
    spread: float = 0.00005  # relative bid/ask spread
    seed: Optional[int] = None


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = "arbwatch.log"
    serialize: bool = False  # JSON lines in the file sink


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    enable_status_http: bool = True
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class Config(BaseModel):
    """Main configuration model."""
    exchanges: ExchangeConfig = Field(default_factory=ExchangeConfig)
    fees: FeeConfig = Field(default_factory=FeeConfig)
    symbols: SymbolConfig = Field(default_factory=SymbolConfig)
    triangle: TriangleConfig = Field(default_factory=TriangleConfig)
    inter_exchange: InterExchangeConfig = Field(default_factory=InterExchangeConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def get_taker_fee_bps(self, exchange: str) -> float:
        """Get taker fee in basis points for an exchange."""
        return self.fees.taker_bps.get(exchange.lower(), self.fees.taker_bps.get("default", 10.0))

    def get_fee_model(self, exchange: str) -> FeeModel:
        """Build the fee model used for an exchange."""
        return FeeModel.from_bps(self.get_taker_fee_bps(exchange), self.fees.flat_transfer_fee_usd)

    def get_symbol_mapper(self) -> SymbolMapper:
        """Symbol translation using the configured quote assets, else the built-in table."""
        return SymbolMapper(self.symbols.quote_assets or None)

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_str = f.read()

        # Substitute environment variables
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)
        # Unset variables become empty rather than literal placeholders
        config_str = re.sub(r"\$\{[A-Za-z_][A-Za-z0-9_]*\}", "", config_str)

        config_data = yaml.safe_load(config_str) or {}
        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "Config":
        """Build configuration from environment variables only."""
        mode = os.getenv("ARBITRAGE_MODE", "WEB_ONLY").upper()
        if mode not in RUN_MODES:
            raise ValueError(f"Unknown ARBITRAGE_MODE: {mode}")
        strategy, autostart = RUN_MODES[mode]

        accounts = {}
        for exchange in ("binance", "bitbex"):
            prefix = exchange.upper()
            key = os.getenv(f"{prefix}_API_KEY", "")
            secret = os.getenv(f"{prefix}_API_SECRET", "")
            if key or secret:
                accounts[exchange] = ExchangeAccount(key=key, secret=secret)

        return cls(
            exchanges=ExchangeConfig(accounts=accounts),
            engine=EngineConfig(strategy=strategy, autostart=autostart),
            logging=LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO")),
            server=ServerConfig(port=int(os.getenv("PORT", "3000"))),
        )


def get_config(config_path: Optional[str] = None) -> Config:
    """Get configuration instance.

    An explicit path must exist. Without one, ``config.yaml`` in the working
    directory is used when present, otherwise the environment.
    """
    if config_path is not None:
        return Config.load_from_file(config_path)
    if Path("config.yaml").exists():
        return Config.load_from_file("config.yaml")
    return Config.from_env()
