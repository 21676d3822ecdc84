"""Configuration system using pydantic-settings with environment variable loading."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrokerSettings(BaseSettings):
    """Alpaca brokerage connection settings."""

    model_config = SettingsConfigDict(env_prefix="ALPACA_")

    api_key: SecretStr = SecretStr("")
    secret_key: SecretStr = SecretStr("")
    paper: bool = True
    request_timeout: float = 10.0


class TradingSettings(BaseSettings):
    """Account and execution parameters."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    mode: Literal["simulation", "paper", "live"] = "simulation"
    initial_capital: Decimal = Decimal("100000")
    risk_per_trade: Decimal = Decimal("0.02")  # 2% of cash at risk per trade
    max_position_size: Decimal = Decimal("0.1")  # 10% of cash per position
    scan_interval: int = 3600  # seconds between autonomous cycles
    max_symbols_per_cycle: int | None = None


class StrategySettings(BaseSettings):
    """RSI + moving average crossover parameters."""

    model_config = SettingsConfigDict(env_prefix="STRATEGY_")

    name: str = "RSI + MA Crossover"
    rsi_period: int = 14
    rsi_oversold: Decimal = Decimal("30")
    rsi_overbought: Decimal = Decimal("70")
    ma_short_period: int = 20
    ma_long_period: int = 50
    atr_period: int = 14
    support_resistance_lookback: int = 20

    # Exit target construction
    atr_stop_multiplier: Decimal = Decimal("2")
    support_buffer: Decimal = Decimal("0.98")
    resistance_buffer: Decimal = Decimal("1.02")
    reward_risk_ratio: Decimal = Decimal("3")

    # Bars beyond ma_long_period required before analysing a symbol
    min_history_padding: int = 10


class ScreeningSettings(BaseSettings):
    """Filters applied by the scheduled end-of-day screen."""

    model_config = SettingsConfigDict(env_prefix="SCREENING_")

    min_price: Decimal | None = Decimal("5")
    max_price: Decimal | None = Decimal("500")
    # Oversold pullback band; SELL setups (RSI > 70) fall outside it
    min_rsi: Decimal | None = Decimal("25")
    max_rsi: Decimal | None = Decimal("35")
    require_ma_crossover: bool = False


class MarketDataSettings(BaseSettings):
    """Market data fetch, cache and pacing configuration."""

    model_config = SettingsConfigDict(env_prefix="MARKET_DATA_")

    history_size: Literal["compact", "full"] = "compact"
    bar_cache_max_age_hours: float = 24.0
    quote_cache_seconds: float = 300.0
    api_calls_per_minute: int = 100


class DatabaseSettings(BaseSettings):
    """SQLite persistence configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    path: str = "data/trading.db"


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 3001
    enabled: bool = True


@dataclass
class RuntimeConfig:
    """Mutable runtime config overlay. Non-None fields override BaseSettings values.

    Applied at the start of each orchestrator cycle so the API can tune
    risk parameters without a restart.
    """

    risk_per_trade: Decimal | None = None
    max_position_size: Decimal | None = None
    rsi_oversold: Decimal | None = None
    rsi_overbought: Decimal | None = None
    scan_interval: int | None = None
    max_symbols_per_cycle: int | None = None


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    broker: BrokerSettings = BrokerSettings()
    trading: TradingSettings = TradingSettings()
    strategy: StrategySettings = StrategySettings()
    screening: ScreeningSettings = ScreeningSettings()
    market_data: MarketDataSettings = MarketDataSettings()
    database: DatabaseSettings = DatabaseSettings()
    api: ApiSettings = ApiSettings()
