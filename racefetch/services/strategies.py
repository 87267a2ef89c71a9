"""Concrete sitemap retrieval strategies.

Each strategy is a closure over the target that satisfies the race's
``(token) -> text`` contract; transport details (HTTP client, headers,
proxies) never leave this module.

Strategy order (all raced at once):
  API        → our own server-side proxy (only when SITEMAP_PROXY_URL is set)
  Direct     → the target itself, curl_cffi with a browser TLS fingerprint
  AllOrigins → public CORS proxy
  Jina       → Jina Reader, output adapted back into sitemap XML
"""

from __future__ import annotations

import gzip
import zlib
import logging
from urllib.parse import quote

import httpx
from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException

from racefetch.config import Settings, settings as default_settings
from racefetch.core.cancellation import CancellationToken
from racefetch.core.exceptions import ConfigurationError, StrategyTransportError
from racefetch.services.jina_adapter import adapt_jina_markdown_to_sitemap_xml
from racefetch.services.race import Strategy, format_seconds

logger = logging.getLogger(__name__)

ACCEPT_XML = "application/xml, text/xml, */*"
_GZIP_MAGIC = b"\x1f\x8b"


def ensure_scheme(target: str) -> str:
    return target if target.startswith(("http://", "https://")) else f"https://{target}"


def decode_body(content: bytes, encoding: str | None = None) -> str:
    """Decode a response body, transparently gunzipping .xml.gz payloads."""
    if content.startswith(_GZIP_MAGIC):
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError, zlib.error) as e:
            raise StrategyTransportError(f"corrupt gzip body: {e}") from e
    try:
        return content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


async def fetch_text_httpx(
    url: str,
    timeout: float,
    token: CancellationToken,
    strategy: str,
    user_agent: str | None = None,
) -> str:
    """GET *url* with httpx and return the body. Raises StrategyTransportError."""
    token.raise_if_cancelled()
    headers = {"Accept": ACCEPT_XML}
    if user_agent:
        headers["User-Agent"] = user_agent
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException as e:
        raise StrategyTransportError(
            f"timeout after {format_seconds(timeout)}", strategy=strategy
        ) from e
    except httpx.HTTPError as e:
        raise StrategyTransportError(str(e) or type(e).__name__, strategy=strategy) from e

    logger.debug(f"{strategy}: {url} -> {response.status_code} ({len(response.content)} bytes)")
    if not response.is_success:
        raise StrategyTransportError(f"HTTP {response.status_code}", strategy=strategy)
    return decode_body(response.content, response.encoding)


async def fetch_text_impersonated(
    url: str,
    timeout: float,
    token: CancellationToken,
    strategy: str,
    impersonate: str = "chrome124",
) -> str:
    """GET *url* with curl_cffi browser impersonation. Raises StrategyTransportError."""
    token.raise_if_cancelled()
    try:
        async with AsyncSession(impersonate=impersonate) as session:
            response = await session.get(
                url,
                timeout=timeout,
                allow_redirects=True,
                headers={"Accept": ACCEPT_XML},
            )
    except RequestException as e:
        raise StrategyTransportError(f"connection failed: {e}", strategy=strategy) from e

    logger.debug(f"{strategy}: {url} -> {response.status_code} ({len(response.content)} bytes)")
    if not 200 <= response.status_code < 300:
        raise StrategyTransportError(f"HTTP {response.status_code}", strategy=strategy)
    return decode_body(response.content, response.encoding)


# ---------------------------------------------------------------------------
# Strategy set
# ---------------------------------------------------------------------------


def build_sitemap_strategies(
    target: str,
    per_strategy_timeout: float | None = None,
    app_settings: Settings | None = None,
) -> list[Strategy]:
    """Build the ordered strategy set for one sitemap *target*."""
    conf = app_settings or default_settings
    trimmed = (target or "").strip()
    if not trimmed:
        raise ConfigurationError("URL is required")

    per = per_strategy_timeout if per_strategy_timeout is not None else conf.PER_STRATEGY_TIMEOUT
    url = ensure_scheme(trimmed)
    encoded = quote(trimmed, safe="")
    strategies: list[Strategy] = []

    if conf.SITEMAP_PROXY_URL:
        api_timeout = min(conf.PROXY_TIMEOUT_MAX, max(per, conf.PROXY_TIMEOUT_MIN))
        proxy_url = f"{conf.SITEMAP_PROXY_URL}?url={encoded}"

        async def run_api(token: CancellationToken) -> str:
            return await fetch_text_httpx(proxy_url, api_timeout, token, "API")

        strategies.append(Strategy("API", run_api, timeout=api_timeout))

    async def run_direct(token: CancellationToken) -> str:
        return await fetch_text_impersonated(
            url, conf.DIRECT_TIMEOUT, token, "Direct", impersonate=conf.DIRECT_IMPERSONATE
        )

    strategies.append(Strategy("Direct", run_direct, timeout=conf.DIRECT_TIMEOUT))

    if conf.ALLORIGINS_URL:
        allorigins_url = f"{conf.ALLORIGINS_URL}?url={encoded}"

        async def run_allorigins(token: CancellationToken) -> str:
            return await fetch_text_httpx(
                allorigins_url, per, token, "AllOrigins", user_agent=conf.USER_AGENT
            )

        strategies.append(Strategy("AllOrigins", run_allorigins))

    if conf.JINA_READER_URL:
        jina_url = f"{conf.JINA_READER_URL.rstrip('/')}/{url}"

        async def run_jina(token: CancellationToken) -> str:
            text = await fetch_text_httpx(jina_url, per, token, "Jina", user_agent=conf.USER_AGENT)
            return adapt_jina_markdown_to_sitemap_xml(text, url) or text

        strategies.append(Strategy("Jina", run_jina))

    return strategies
