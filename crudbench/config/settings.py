"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j Bolt connection settings (query-language backend)."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j Bolt URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=1, description="Connection pool size")

    query_timeout_ms: int = Field(default=30000, description="Per-statement timeout in milliseconds")
    connection_timeout_seconds: float = Field(default=30.0, description="Connection timeout in seconds")


class RestSettings(BaseSettings):
    """Neo4j REST API settings (resource-oriented backend)."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_REST_")

    root_uri: str = Field(
        default="http://localhost:7474/db/data/",
        description="Root URI for all REST requests",
    )
    username: str | None = Field(default=None, description="Basic auth username")
    password: SecretStr | None = Field(default=None, description="Basic auth password")
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout in seconds")


class BenchmarkSettings(BaseSettings):
    """Benchmark execution settings."""

    model_config = SettingsConfigDict(env_prefix="BENCHMARK_")

    backend: Annotated[
        Literal["rest", "bolt"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default="rest", description="Backend adapter to benchmark")

    num_samples: int = Field(default=10000, ge=0, description="Samples per timed phase")
    warmup_samples: int = Field(default=100000, ge=0, description="Samples for the warm-up scenario")

    output_dir: str = Field(default=".", description="Directory for latency artifacts")
    save_raw_results: bool = Field(default=True, description="Persist raw latency series")
    clear_before_run: bool = Field(default=True, description="Clear the store before a batch")
    index_await_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Upper bound for index readiness"
    )
    summary_path: str | None = Field(default=None, description="Optional JSON run summary path")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for machines, console for humans)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="crudbench", description="Application name")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    rest: RestSettings = Field(default_factory=RestSettings)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
