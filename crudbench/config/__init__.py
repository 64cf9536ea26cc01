from crudbench.config.settings import (
    BenchmarkSettings,
    Neo4jSettings,
    ObservabilitySettings,
    RestSettings,
    Settings,
    get_settings,
)

__all__ = [
    "BenchmarkSettings",
    "Neo4jSettings",
    "ObservabilitySettings",
    "RestSettings",
    "Settings",
    "get_settings",
]
