import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from racefetch.config import settings
from racefetch.core.cancellation import CancellationToken
from racefetch.core.exceptions import ConfigurationError, RaceFailure
from racefetch.schemas.sitemap import RaceFailureResponse, SitemapResult
from racefetch.services.race import RaceConfig
from racefetch.services.sitemap import fetch_sitemap_text

router = APIRouter()
logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5  # seconds


async def _cancel_on_disconnect(request: Request, token: CancellationToken) -> None:
    """Fire *token* once the client goes away."""
    while not token.is_cancelled():
        if await request.is_disconnected():
            logger.info(f"Client disconnected, cancelling race for {request.url.path}")
            token.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


@router.get(
    "",
    summary="Fetch sitemap XML",
    description="Race every configured retrieval strategy (server-side proxy, direct fetch, CORS proxy, reader proxy) for the given sitemap URL and return the first response that is valid sitemap XML. The winning strategy is reported in the X-Race-Winner header. Returns 502 with every strategy's failure reason when none succeeds.",
    responses={502: {"model": RaceFailureResponse}},
)
async def fetch_sitemap(
    request: Request,
    url: str = Query(..., description="Sitemap URL to fetch"),
    per_strategy_timeout: float | None = Query(None, gt=0, description="Seconds per strategy"),
    overall_timeout: float | None = Query(None, gt=0, description="Seconds for the whole race"),
    output: str = Query("xml", alias="format", pattern="^(xml|json)$"),
):
    """Fetch sitemap XML for *url* through the strategy race."""
    token = CancellationToken(name="http-client")
    config = RaceConfig(
        per_strategy_timeout=per_strategy_timeout or settings.PER_STRATEGY_TIMEOUT,
        overall_timeout=overall_timeout or settings.OVERALL_TIMEOUT,
        external_cancellation=token,
    )

    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        result = await fetch_sitemap_text(url, config)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RaceFailure as e:
        return JSONResponse(status_code=502, content=RaceFailureResponse(**e.to_dict()).model_dump())
    finally:
        watcher.cancel()

    headers = {"X-Race-Winner": result.winner, "X-Race-Elapsed": f"{result.elapsed:.3f}"}
    if output == "json":
        body = SitemapResult(
            url=url.strip(), winner=result.winner, elapsed=result.elapsed, text=result.text
        )
        return JSONResponse(content=body.model_dump(), headers=headers)
    return Response(content=result.text, media_type="application/xml", headers=headers)
