"""Strategy racing engine and the sitemap strategies built on it."""

from racefetch.services.race import (
    Cancelled,
    Failed,
    Invalid,
    RaceConfig,
    RaceCoordinator,
    RaceResult,
    Strategy,
    StrategyOutcome,
    Valid,
    aggregate_failures,
    invoke_timed,
    race_acquire,
)
from racefetch.services.sitemap import fetch_sitemap_text
from racefetch.services.validation import ValidationGate, sitemap_gate

__all__ = [
    "Strategy",
    "StrategyOutcome",
    "Valid",
    "Invalid",
    "Failed",
    "Cancelled",
    "RaceConfig",
    "RaceResult",
    "RaceCoordinator",
    "race_acquire",
    "invoke_timed",
    "aggregate_failures",
    "ValidationGate",
    "sitemap_gate",
    "fetch_sitemap_text",
]
