"""Error taxonomy for strategy races.

Only ConfigurationError and the RaceFailure family ever reach a caller.
StrategyTransportError / StrategyValidationError describe a single strategy
and travel inside outcomes and RaceFailure.errors.
"""

from __future__ import annotations

CAUSE_ALL_FAILED = "all-failed"
CAUSE_OVERALL_TIMEOUT = "overall-timeout"
CAUSE_EXTERNALLY_CANCELLED = "externally-cancelled"


class RaceFetchError(Exception):
    """Base class for all racefetch errors."""


class ConfigurationError(RaceFetchError):
    """Bad target or race configuration. Raised before any strategy starts."""


class StrategyTransportError(RaceFetchError):
    """A strategy's own operation failed (HTTP error, connection error...)."""

    def __init__(self, message: str, strategy: str = ""):
        self.strategy = strategy
        super().__init__(message)


class StrategyValidationError(RaceFetchError):
    """A strategy returned text that did not pass the validation gate."""

    def __init__(self, message: str, strategy: str = ""):
        self.strategy = strategy
        super().__init__(message)


class RaceFailure(RaceFetchError):
    """No strategy produced a valid result."""

    cause = CAUSE_ALL_FAILED

    def __init__(
        self,
        message: str,
        per_strategy_reasons: list[tuple[str, str]] | None = None,
        errors: list[BaseException] | None = None,
    ):
        self.per_strategy_reasons = per_strategy_reasons or []
        self.errors = errors or []
        super().__init__(message)

    @property
    def strategy_names(self) -> list[str]:
        return [name for name, _ in self.per_strategy_reasons]

    def to_dict(self) -> dict:
        return {
            "cause": self.cause,
            "message": str(self),
            "reasons": [
                {"strategy": name, "reason": reason}
                for name, reason in self.per_strategy_reasons
            ],
        }


class AllStrategiesExhausted(RaceFailure):
    """Every strategy settled and none was valid."""

    cause = CAUSE_ALL_FAILED


class OverallTimeoutError(RaceFailure):
    """The race deadline fired before any strategy won."""

    cause = CAUSE_OVERALL_TIMEOUT


class ExternalCancellationError(RaceFailure):
    """The caller cancelled the race."""

    cause = CAUSE_EXTERNALLY_CANCELLED
