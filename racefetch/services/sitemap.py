"""Sitemap acquisition: the default strategy set raced behind the sitemap gate."""

from racefetch.config import Settings
from racefetch.services.race import RaceConfig, RaceCoordinator, RaceResult
from racefetch.services.strategies import build_sitemap_strategies
from racefetch.services.validation import sitemap_gate


async def fetch_sitemap_text(
    target: str,
    config: RaceConfig | None = None,
    app_settings: Settings | None = None,
) -> RaceResult:
    """Fetch sitemap XML for *target* through whichever strategy gets there first.

    Raises ConfigurationError for an empty target and a RaceFailure subclass
    when no strategy returns sitemap XML.
    """
    config = (config or RaceConfig()).clamped()
    strategies = build_sitemap_strategies(
        target, config.per_strategy_timeout, app_settings=app_settings
    )
    coordinator = RaceCoordinator(strategies, sitemap_gate)
    return await coordinator.acquire(target, config)
