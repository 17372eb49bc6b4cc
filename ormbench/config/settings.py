"""
ORM Benchmark Data Generator
Centralized Configuration Management

Pydantic settings with environment variable support for the database
targets, the synthetic dataset sizes and the benchmark runner.
"""

from datetime import date
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


DATASETS = ("oltp", "olap")


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(default="postgres", description="Database password")
    oltp_db: str = Field(default="oltp", description="OLTP database name")
    olap_db: str = Field(default="olap", description="OLAP database name")
    oltp_url: Optional[str] = Field(default=None, description="OLTP URL (overrides host/port/db)")
    olap_url: Optional[str] = Field(default=None, description="OLAP URL (overrides host/port/db)")
    echo: bool = Field(default=False, description="Echo SQL queries")

    def url_for(self, dataset: str) -> str:
        """Async database URL for the given dataset, using the override if set"""
        if dataset not in DATASETS:
            raise ValueError(f"Unknown dataset: {dataset}")
        override = self.oltp_url if dataset == "oltp" else self.olap_url
        if override:
            return override
        db = self.oltp_db if dataset == "oltp" else self.olap_db
        url = URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=db,
        )
        return url.render_as_string(hide_password=False)


class GenerationSettings(BaseSettings):
    """Synthetic data generation configuration"""

    model_config = SettingsConfigDict(env_prefix="GENERATION_")

    batch_size: int = Field(default=1000, description="Rows per bulk insert")
    seed: Optional[int] = Field(default=None, description="Random seed (unset = unseeded)")
    log_every_batches: int = Field(default=100, description="Progress log interval in batches")
    validate_batches: bool = Field(default=False, description="Run data quality checks on every batch")

    # OLTP
    users: int = Field(default=1_000_000, description="Users to generate")
    products: int = Field(default=200, description="Products to generate")
    orders: int = Field(default=2_000_000, description="Orders to generate")
    order_items: int = Field(default=5_000_000, description="Order items to generate")

    # OLAP
    date_start: date = Field(default=date(2022, 1, 1), description="First calendar day of dim_date")
    date_end: date = Field(default=date(2024, 12, 31), description="Last calendar day of dim_date")
    regions: int = Field(default=500, description="Regions to generate")
    customers: int = Field(default=500_000, description="Customers to generate")
    dim_products: int = Field(default=1_000, description="Warehouse products to generate")
    sales: int = Field(default=10_000_000, description="Sales facts to generate")


class BenchmarkSettings(BaseSettings):
    """Benchmark runner configuration"""

    model_config = SettingsConfigDict(env_prefix="BENCHMARK_")

    layers: List[str] = Field(default=["sql", "core", "orm"], description="Access layers to benchmark")
    repeat: int = Field(default=1, description="Timed executions per query")
    search_name: str = Field(default="John", description="Name fragment for user search")
    page_size: int = Field(default=20, description="Page size for recent orders")
    sample_id: int = Field(default=1, description="Primary key used by point lookups")
    include_writes: bool = Field(default=True, description="Time the OLTP write operations (rolled back)")

    @field_validator("layers")
    @classmethod
    def validate_layers(cls, v: List[str]) -> List[str]:
        """Validate access layer names"""
        allowed = ["sql", "core", "orm"]
        unknown = [layer for layer in v if layer not in allowed]
        if unknown:
            raise ValueError(f"Unknown layers {unknown}, expected any of: {allowed}")
        return v


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or console")


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

    app_name: str = Field(default="ormbench", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
