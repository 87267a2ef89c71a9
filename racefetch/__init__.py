"""racefetch -- fetch a remote document by racing several retrieval strategies."""

__version__ = "0.1.0"

from racefetch.core.cancellation import CancellationToken, link_cancellation
from racefetch.core.exceptions import (
    AllStrategiesExhausted,
    ConfigurationError,
    ExternalCancellationError,
    OverallTimeoutError,
    RaceFailure,
    RaceFetchError,
    StrategyTransportError,
    StrategyValidationError,
)
from racefetch.services import (
    RaceConfig,
    RaceCoordinator,
    RaceResult,
    Strategy,
    ValidationGate,
    fetch_sitemap_text,
    race_acquire,
    sitemap_gate,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "race_acquire",
    "RaceCoordinator",
    "RaceConfig",
    "RaceResult",
    "Strategy",
    "ValidationGate",
    "sitemap_gate",
    "fetch_sitemap_text",
    # Cancellation
    "CancellationToken",
    "link_cancellation",
    # Exceptions
    "RaceFetchError",
    "ConfigurationError",
    "StrategyTransportError",
    "StrategyValidationError",
    "RaceFailure",
    "AllStrategiesExhausted",
    "OverallTimeoutError",
    "ExternalCancellationError",
]
