"""
POS Analytics Engine
Centralized Configuration Management

Configuration is built on Pydantic settings with environment variable
support. Every analyzer accepts a ``Settings`` instance explicitly and only
falls back to ``get_settings()`` when none is given.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Transaction store database configuration"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(default="sqlite:///./pos_transactions.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL queries")


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    url: Optional[str] = Field(default=None, description="Redis URL (overrides host/port)")
    max_connections: int = Field(default=20, description="Connection pool size")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class CacheSettings(BaseSettings):
    """Response cache TTLs per analytics domain (seconds)"""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    key_prefix: str = Field(default="pos", description="Prefix for every cache key")
    revenue_ttl: int = Field(default=300, description="Revenue metrics TTL")
    products_ttl: int = Field(default=600, description="Product performance TTL")
    traffic_ttl: int = Field(default=900, description="Traffic pattern TTL")
    customers_ttl: int = Field(default=1200, description="Customer insight TTL")
    inventory_ttl: int = Field(default=1800, description="Inventory analysis TTL")
    long_term_ttl: int = Field(default=3600, description="Seasonal/yearly data TTL")


class InventorySettings(BaseSettings):
    """Inventory optimization constants"""

    model_config = SettingsConfigDict(env_prefix="INVENTORY_")

    order_cost: float = Field(default=10.0, description="Fixed cost per purchase order")
    holding_cost_rate: float = Field(default=0.2, description="Holding cost as a fraction of demand")
    lead_time_days: int = Field(default=2, description="Supplier lead time in days")
    service_level_z: float = Field(default=2.0, description="Stddev multiplier for safety stock (~95%)")
    volatility_proxy_rate: float = Field(
        default=0.2,
        description="Fraction of mean demand used when stddev is unavailable",
    )
    moving_average_window: int = Field(default=7, description="Days in the forecast moving average")
    default_forecast_days: int = Field(default=7, description="Days forecast when not requested")
    low_sales_fraction: float = Field(default=0.25, description="Below this share of mean a day counts as low")
    low_sales_days_threshold: float = Field(default=0.3, description="Share of low days that flags medium waste risk")


class TrafficSettings(BaseSettings):
    """Traffic and staffing heuristics"""

    model_config = SettingsConfigDict(env_prefix="TRAFFIC_")

    default_max_capacity: int = Field(default=50, description="Transactions per hour at full capacity")
    staffing_threshold: float = Field(default=1.5, description="Multiplier over average hourly traffic")
    transactions_per_staff: int = Field(default=10, description="Transactions one staff member handles per hour")
    peak_hour_count: int = Field(default=3, description="Number of peak hours reported")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="pos-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)
    traffic: TrafficSettings = Field(default_factory=TrafficSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
