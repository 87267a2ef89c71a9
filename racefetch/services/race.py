"""Strategy racing.

Runs several interchangeable retrieval strategies concurrently against the
same target, accepts the first result that passes a validation gate and
cancels the rest.

    caller -> race_acquire()
                -> invoke_timed(strategy) x N      (one asyncio task each)
                -> gate.check(text)                (per settlement)
                -> first Valid wins, race token cancels the others
                -> otherwise one RaceFailure with every strategy's reason

Terminal transitions (winner, all failed, overall deadline, caller
cancellation) all happen inside synchronous callbacks on the event loop, so
the "has someone won yet" check and the declaration are atomic and no lock
is needed. Late settlements after the race resolved are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Awaitable, Callable, Iterable, Union

from racefetch.config import settings
from racefetch.core import metrics
from racefetch.core.cancellation import CancellationToken, link_cancellation
from racefetch.core.context import bind_race_id, new_race_id
from racefetch.core.exceptions import (
    AllStrategiesExhausted,
    ConfigurationError,
    ExternalCancellationError,
    OverallTimeoutError,
    RaceFailure,
    StrategyTransportError,
    StrategyValidationError,
)
from racefetch.services.validation import ValidationGate, as_gate

logger = logging.getLogger(__name__)

FAILURE_SEPARATOR = " | "

_CANCEL_MESSAGE_RE = re.compile(r"abort|cancel", re.IGNORECASE)

Operation = Callable[[CancellationToken], Awaitable[str]]


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Strategy:
    """One named way of acquiring the target.

    ``operation`` receives the invocation's cancellation token and returns
    the raw text. ``timeout`` overrides the race's per-strategy timeout.
    """

    name: str
    operation: Operation
    timeout: float | None = None


@dataclass(frozen=True)
class Valid:
    text: str
    kind = "valid"

    @property
    def reason(self) -> str:
        return "valid"


@dataclass(frozen=True)
class Invalid:
    reason: str
    error: StrategyValidationError | None = None
    kind = "invalid"


@dataclass(frozen=True)
class Failed:
    reason: str
    error: BaseException | None = None
    timed_out: bool = False
    kind = "failed"


@dataclass(frozen=True)
class Cancelled:
    reason: str = "cancelled"
    error: BaseException | None = None
    kind = "cancelled"


StrategyOutcome = Union[Valid, Invalid, Failed, Cancelled]


@dataclass(frozen=True)
class RaceConfig:
    per_strategy_timeout: float = field(
        default_factory=lambda: settings.PER_STRATEGY_TIMEOUT
    )
    overall_timeout: float = field(default_factory=lambda: settings.OVERALL_TIMEOUT)
    external_cancellation: CancellationToken | None = None
    min_strategy_timeout: float = field(
        default_factory=lambda: settings.MIN_STRATEGY_TIMEOUT
    )

    def clamped(self) -> RaceConfig:
        """Raise the per-strategy timeout to the floor and the overall timeout to it."""
        for name in ("per_strategy_timeout", "overall_timeout", "min_strategy_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number of seconds, got {value!r}")
        per = max(self.min_strategy_timeout, self.per_strategy_timeout)
        overall = max(per, self.overall_timeout)
        return replace(self, per_strategy_timeout=per, overall_timeout=overall)

    def timeout_for(self, strategy: Strategy) -> float:
        if strategy.timeout is None:
            return self.per_strategy_timeout
        return max(self.min_strategy_timeout, strategy.timeout)


@dataclass(frozen=True)
class RaceResult:
    winner: str
    text: str
    elapsed: float = 0.0


def format_seconds(seconds: float) -> str:
    if seconds >= 1:
        return f"{round(seconds)}s"
    return f"{round(seconds * 1000)}ms"


def aggregate_failures(reasons: Iterable[tuple[str, str]]) -> str:
    """Render per-strategy reasons as ``"A: HTTP 403 | B: timeout after 8s"``."""
    return FAILURE_SEPARATOR.join(f"{name}: {reason}" for name, reason in reasons)


# ---------------------------------------------------------------------------
# Timed invocation
# ---------------------------------------------------------------------------


async def invoke_timed(
    strategy: Strategy,
    shared: CancellationToken,
    timeout: float,
    gate: ValidationGate | Callable[[str], bool] | None = None,
) -> StrategyOutcome:
    """Run one strategy under its own deadline and classify how it settled.

    The strategy gets a child token linked from *shared*. Hitting the
    deadline cancels only that child, never *shared*, so one slow strategy
    cannot abort its siblings.
    """
    gate = as_gate(gate) if gate is not None else None
    token = CancellationToken(name=strategy.name)
    unlink = link_cancellation(shared, token)
    if token.is_cancelled():
        unlink()
        return Cancelled()

    try:
        task = asyncio.ensure_future(strategy.operation(token))
    except Exception as e:
        unlink()
        return Failed(str(e) or type(e).__name__, error=e)
    stop_listening = token.on_cancel(task.cancel)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if done:
            return _classify(strategy, task, token, gate)
        if token.is_cancelled():
            # Cancelled earlier but the strategy ignored it until now.
            return Cancelled("cancelled (strategy did not stop)")
        token.cancel()
        reason = f"timeout after {format_seconds(timeout)}"
        return Failed(
            reason,
            error=StrategyTransportError(reason, strategy=strategy.name),
            timed_out=True,
        )
    except asyncio.CancelledError:
        token.cancel()
        raise
    finally:
        stop_listening()
        unlink()
        if not task.done():
            task.cancel()
            task.add_done_callback(partial(_consume_straggler, strategy.name))


def _classify(
    strategy: Strategy,
    task: asyncio.Future,
    token: CancellationToken,
    gate: ValidationGate | None,
) -> StrategyOutcome:
    if task.cancelled():
        return Cancelled()

    exc = task.exception()
    if exc is not None:
        message = str(exc) or type(exc).__name__
        if token.is_cancelled():
            return Cancelled()
        if _CANCEL_MESSAGE_RE.search(message):
            # Abort-shaped but nobody asked it to stop: keep the message.
            return Cancelled(f"cancelled ({message})", error=exc)
        return Failed(message, error=exc)

    text = task.result()
    if not isinstance(text, str):
        reason = f"returned {type(text).__name__} instead of text"
        return Failed(reason, error=StrategyTransportError(reason, strategy=strategy.name))

    if gate is None:
        return Valid(text)
    reason = gate.check(text)
    if reason is None:
        return Valid(text)
    return Invalid(reason, error=StrategyValidationError(reason, strategy=strategy.name))


def _consume_straggler(name: str, task: asyncio.Future) -> None:
    """Retrieve the result of a strategy that outlived its invocation."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Race: {name} finished after being abandoned: {exc}")


# ---------------------------------------------------------------------------
# Race coordinator
# ---------------------------------------------------------------------------


class _Race:
    """State of one race: settlement log, winner flag and the terminal future."""

    def __init__(
        self,
        target: str,
        strategies: list[Strategy],
        token: CancellationToken,
        loop: asyncio.AbstractEventLoop,
    ):
        self.target = target
        self.strategies = strategies
        self.token = token
        self.loop = loop
        self.started = loop.time()
        self.settled: list[tuple[str, StrategyOutcome]] = []
        self.winner: str | None = None
        self.outcome: asyncio.Future = loop.create_future()

    @property
    def finished(self) -> bool:
        return self.outcome.done()

    @property
    def elapsed(self) -> float:
        return self.loop.time() - self.started

    def on_invocation_done(self, strategy: Strategy, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            outcome: StrategyOutcome = Failed(str(exc) or type(exc).__name__, error=exc)
        else:
            outcome = task.result()
        self.settle(strategy, outcome)

    def settle(self, strategy: Strategy, outcome: StrategyOutcome) -> None:
        if self.finished:
            logger.debug(
                f"Race: late {outcome.kind} from {strategy.name} for {self.target} ignored"
            )
            return

        self.settled.append((strategy.name, outcome))
        kind = "timeout" if isinstance(outcome, Failed) and outcome.timed_out else outcome.kind
        metrics.strategy_outcomes_total.labels(strategy=strategy.name, outcome=kind).inc()

        if isinstance(outcome, Valid):
            self.winner = strategy.name
            # Same tick: every sibling's token fires before anything else runs.
            self.token.cancel()
            self.outcome.set_result(
                RaceResult(winner=strategy.name, text=outcome.text, elapsed=self.elapsed)
            )
            return

        logger.warning(f"Race: {strategy.name} {kind} for {self.target}: {outcome.reason}")
        if len(self.settled) == len(self.strategies):
            self._fail(AllStrategiesExhausted, "All strategies failed")

    def on_overall_timeout(self, timeout: float) -> None:
        if self.finished:
            return
        self.token.cancel()
        self._fail(
            OverallTimeoutError,
            f"All strategies timed out after {format_seconds(timeout)}",
            pending_reason="cancelled (overall timeout)",
        )

    def on_external_cancel(self) -> None:
        if self.finished:
            return
        self.token.cancel()
        self._fail(
            ExternalCancellationError,
            "Cancelled",
            pending_reason="cancelled by caller",
        )

    def _fail(
        self,
        error_cls: type[RaceFailure],
        headline: str,
        pending_reason: str = "cancelled",
    ) -> None:
        reasons = [(name, outcome.reason) for name, outcome in self.settled]
        errors = [
            outcome.error
            for _, outcome in self.settled
            if getattr(outcome, "error", None) is not None
        ]
        settled_names = {name for name, _ in self.settled}
        reasons.extend(
            (s.name, pending_reason) for s in self.strategies if s.name not in settled_names
        )
        message = f"{headline}: {aggregate_failures(reasons)}"
        self.outcome.set_exception(
            error_cls(message, per_strategy_reasons=reasons, errors=errors)
        )


def _check_strategies(strategies: list[Strategy]) -> None:
    if not strategies:
        raise ConfigurationError("No fetch strategies available")
    seen: set[str] = set()
    for strategy in strategies:
        if not isinstance(strategy, Strategy):
            raise ConfigurationError(f"Not a Strategy: {strategy!r}")
        if not strategy.name:
            raise ConfigurationError("Strategy name must not be empty")
        if strategy.name in seen:
            raise ConfigurationError(f"Duplicate strategy name: {strategy.name}")
        if not callable(strategy.operation):
            raise ConfigurationError(f"Strategy {strategy.name} has no callable operation")
        seen.add(strategy.name)


async def race_acquire(
    target: str,
    strategies: Iterable[Strategy],
    gate: ValidationGate | Callable[[str], bool],
    config: RaceConfig | None = None,
) -> RaceResult:
    """Race *strategies* for *target* and return the first valid result.

    Raises:
        ConfigurationError: empty target or unusable strategy list; nothing
            is launched.
        AllStrategiesExhausted: every strategy failed or was invalid.
        OverallTimeoutError: the overall deadline fired first.
        ExternalCancellationError: ``config.external_cancellation`` fired first.
    """
    trimmed = target.strip() if isinstance(target, str) else ""
    if not trimmed:
        raise ConfigurationError("URL is required")
    strategies = list(strategies)
    _check_strategies(strategies)
    config = (config or RaceConfig()).clamped()
    gate = as_gate(gate)

    with bind_race_id(new_race_id()):
        return await _run_race(trimmed, strategies, gate, config)


async def _run_race(
    target: str,
    strategies: list[Strategy],
    gate: ValidationGate,
    config: RaceConfig,
) -> RaceResult:
    loop = asyncio.get_running_loop()
    token = CancellationToken(name="race")
    race = _Race(target, strategies, token, loop)
    external = config.external_cancellation

    unlink = link_cancellation(external, token)
    stop_external = external.on_cancel(race.on_external_cancel) if external else None
    invocations: list[asyncio.Task] = []
    deadline = None

    if not race.finished:
        logger.debug(
            f"Race start for {target}: {[s.name for s in strategies]} "
            f"(per={config.per_strategy_timeout}s, overall={config.overall_timeout}s)"
        )
        for strategy in strategies:
            task = asyncio.create_task(
                invoke_timed(strategy, token, config.timeout_for(strategy), gate),
                name=f"race:{strategy.name}",
            )
            task.add_done_callback(partial(race.on_invocation_done, strategy))
            invocations.append(task)
        deadline = loop.call_later(
            config.overall_timeout, race.on_overall_timeout, config.overall_timeout
        )

    try:
        result = await race.outcome
        logger.info(f"Race winner: {result.winner} for {target} ({result.elapsed:.2f}s)")
        return result
    except RaceFailure as e:
        logger.warning(f"Race failed for {target} ({e.cause}): {e}")
        raise
    finally:
        if deadline is not None:
            deadline.cancel()
        if stop_external is not None:
            stop_external()
        unlink()
        token.cancel()
        for task in invocations:
            if not task.done():
                task.cancel()
        _record_race(race)


def _record_race(race: _Race) -> None:
    if not race.outcome.done() or race.outcome.cancelled():
        return
    exc = race.outcome.exception()
    cause = exc.cause if isinstance(exc, RaceFailure) else "won"
    metrics.race_total.labels(cause=cause).inc()
    metrics.race_duration_seconds.labels(cause=cause).observe(race.elapsed)


class RaceCoordinator:
    """A static, ordered strategy set and gate, raced on every acquire()."""

    def __init__(
        self,
        strategies: Iterable[Strategy],
        gate: ValidationGate | Callable[[str], bool],
    ):
        self._strategies = list(strategies)
        _check_strategies(self._strategies)
        self._gate = as_gate(gate)

    @property
    def strategies(self) -> list[Strategy]:
        return list(self._strategies)

    @property
    def gate(self) -> ValidationGate:
        return self._gate

    async def acquire(self, target: str, config: RaceConfig | None = None) -> RaceResult:
        return await race_acquire(target, self._strategies, self._gate, config)
