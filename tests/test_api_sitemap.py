"""Tests for the /v1/sitemap endpoint."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from racefetch.core.exceptions import AllStrategiesExhausted, OverallTimeoutError
from racefetch.services.race import RaceResult

FETCH = "racefetch.api.v1.sitemap.fetch_sitemap_text"


class TestSitemapEndpoint:
    @pytest.mark.asyncio
    async def test_returns_xml_with_winner_header(self, client: AsyncClient, sitemap_xml):
        mock = AsyncMock(return_value=RaceResult("Direct", sitemap_xml, 0.42))
        with patch(FETCH, mock):
            resp = await client.get("/v1/sitemap", params={"url": "https://example.com/sitemap.xml"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/xml")
        assert resp.headers["X-Race-Winner"] == "Direct"
        assert resp.headers["X-Race-Elapsed"] == "0.420"
        assert resp.text == sitemap_xml
        assert "X-Request-ID" in resp.headers

    @pytest.mark.asyncio
    async def test_json_format(self, client: AsyncClient, sitemap_xml):
        mock = AsyncMock(return_value=RaceResult("Jina", sitemap_xml, 1.5))
        with patch(FETCH, mock):
            resp = await client.get(
                "/v1/sitemap",
                params={"url": " https://example.com/sitemap.xml ", "format": "json"},
            )

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["winner"] == "Jina"
        assert data["url"] == "https://example.com/sitemap.xml"
        assert data["text"] == sitemap_xml

    @pytest.mark.asyncio
    async def test_timeouts_forwarded(self, client: AsyncClient, sitemap_xml):
        mock = AsyncMock(return_value=RaceResult("Direct", sitemap_xml, 0.1))
        with patch(FETCH, mock):
            await client.get(
                "/v1/sitemap",
                params={
                    "url": "https://example.com/sitemap.xml",
                    "per_strategy_timeout": 6,
                    "overall_timeout": 20,
                },
            )

        target, config = mock.call_args.args
        assert target == "https://example.com/sitemap.xml"
        assert config.per_strategy_timeout == 6
        assert config.overall_timeout == 20
        assert config.external_cancellation is not None

    @pytest.mark.asyncio
    async def test_race_failure_is_502(self, client: AsyncClient):
        error = AllStrategiesExhausted(
            "All strategies failed: Direct: HTTP 403 | Jina: not sitemap XML",
            per_strategy_reasons=[("Direct", "HTTP 403"), ("Jina", "not sitemap XML")],
        )
        with patch(FETCH, AsyncMock(side_effect=error)):
            resp = await client.get("/v1/sitemap", params={"url": "https://example.com/sitemap.xml"})

        assert resp.status_code == 502
        data = resp.json()
        assert data["success"] is False
        assert data["cause"] == "all-failed"
        assert data["reasons"] == [
            {"strategy": "Direct", "reason": "HTTP 403"},
            {"strategy": "Jina", "reason": "not sitemap XML"},
        ]

    @pytest.mark.asyncio
    async def test_overall_timeout_is_502(self, client: AsyncClient):
        error = OverallTimeoutError("All strategies timed out after 15s: Direct: cancelled (overall timeout)")
        with patch(FETCH, AsyncMock(side_effect=error)):
            resp = await client.get("/v1/sitemap", params={"url": "https://example.com/sitemap.xml"})
        assert resp.status_code == 502
        assert resp.json()["cause"] == "overall-timeout"

    @pytest.mark.asyncio
    async def test_blank_url_is_400(self, client: AsyncClient):
        resp = await client.get("/v1/sitemap", params={"url": "   "})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "URL is required"

    @pytest.mark.asyncio
    async def test_missing_url_is_422(self, client: AsyncClient):
        resp = await client.get("/v1/sitemap")
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_bad_format_is_422(self, client: AsyncClient):
        resp = await client.get(
            "/v1/sitemap", params={"url": "https://example.com/sitemap.xml", "format": "yaml"}
        )
        assert resp.status_code == 422
