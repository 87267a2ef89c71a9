import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from racefetch.services.race import RaceConfig, Strategy

SITEMAP_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    "<url><loc>https://example.com/</loc></url>"
    "<url><loc>https://example.com/about</loc></url>"
    "</urlset>"
)

CHALLENGE_HTML = (
    "<html><head><title>Just a moment...</title></head>"
    "<body>Checking your browser before accessing example.com</body></html>"
)


@pytest.fixture
def sitemap_xml() -> str:
    return SITEMAP_XML


@pytest.fixture
def challenge_html() -> str:
    return CHALLENGE_HTML


@pytest.fixture
def race_config():
    """Build a RaceConfig with a tiny clamp floor so tests can use millisecond timeouts."""

    def _make(per=1.0, overall=2.0, external=None, floor=0.01):
        return RaceConfig(
            per_strategy_timeout=per,
            overall_timeout=overall,
            external_cancellation=external,
            min_strategy_timeout=floor,
        )

    return _make


@pytest.fixture
def make_strategy():
    """Build a fake strategy.

    delay: seconds before settling; text: value returned; error: exception
    raised; hang: never settle; cancelled_log: list that receives the
    strategy name when its token fires; calls: list that receives the name
    when the operation starts.
    """

    def _make(
        name,
        delay=0.0,
        text=None,
        error=None,
        hang=False,
        cancelled_log=None,
        calls=None,
        timeout=None,
    ):
        async def operation(token):
            if calls is not None:
                calls.append(name)
            if cancelled_log is not None:
                token.on_cancel(lambda: cancelled_log.append(name))
            if hang:
                await asyncio.Event().wait()
            if delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return text

        return Strategy(name, operation, timeout=timeout)

    return _make


@pytest_asyncio.fixture
async def client():
    from racefetch.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
