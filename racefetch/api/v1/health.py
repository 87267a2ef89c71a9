
from fastapi import APIRouter
from fastapi.responses import Response

from racefetch.config import settings
from racefetch.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()


@router.get(
    "/health",
    summary="Liveness check",
    description="Returns HTTP 200 while the process is up. Does not touch any upstream; use /health/ready to see which strategies are enabled.",
)
async def liveness():
    """Liveness probe. Returns 200 if the process is running."""
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    summary="Readiness check",
    description="Report which sitemap retrieval strategies are enabled by the current configuration together with the effective race timeouts.",
)
async def readiness():
    """Readiness probe. Lists the strategies a race would launch."""
    from racefetch.services.race import RaceConfig
    from racefetch.services.strategies import build_sitemap_strategies

    config = RaceConfig().clamped()
    strategies = build_sitemap_strategies(
        "https://example.com/sitemap.xml", config.per_strategy_timeout
    )
    return {
        "status": "ready",
        "strategies": [
            {"name": s.name, "timeout": config.timeout_for(s)} for s in strategies
        ],
        "per_strategy_timeout": config.per_strategy_timeout,
        "overall_timeout": config.overall_timeout,
    }


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose race and strategy metrics in Prometheus exposition format. Returns HTTP 404 if metrics collection is disabled in the application configuration.",
)
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
