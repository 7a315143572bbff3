"""Tests for the page fetcher's request shape and response classification."""

from typing import List

import httpx
import pytest

from pricecrawler.scrapers.base import PageFetched, RateLimited, TransportError
from pricecrawler.scrapers.fetcher import SearchPageFetcher, build_http_client


def make_fetcher(test_settings, handler, seen: List[httpx.Request] = None) -> SearchPageFetcher:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(recording_handler),
        headers={"User-Agent": test_settings.USER_AGENT},
    )
    return SearchPageFetcher(client, test_settings)


class TestRequest:

    async def test_issues_one_get_with_page_and_term(self, test_settings):
        seen: List[httpx.Request] = []
        fetcher = make_fetcher(test_settings, lambda r: httpx.Response(200, text="<html></html>"), seen)

        await fetcher.fetch(3)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert request.url.scheme == "https"
        assert request.url.host == "example.com"
        assert request.url.path == "/search"
        assert request.url.params["query"] == "raspberry pi"
        assert request.url.params["page"] == "3"

    async def test_sends_configured_user_agent(self, test_settings):
        seen: List[httpx.Request] = []
        fetcher = make_fetcher(test_settings, lambda r: httpx.Response(200, text=""), seen)

        await fetcher.fetch(1)

        assert seen[0].headers["User-Agent"] == "TestAgent/1.0"

    async def test_build_http_client_sets_identity(self, test_settings):
        async with build_http_client(test_settings) as client:
            assert client.headers["User-Agent"] == "TestAgent/1.0"
            assert client.timeout.read == test_settings.HTTP_TIMEOUT_SECONDS


class TestClassification:

    async def test_success_returns_markup(self, test_settings):
        fetcher = make_fetcher(test_settings, lambda r: httpx.Response(200, text="<p>hi</p>"))

        result = await fetcher.fetch(1)

        assert result == PageFetched(markup="<p>hi</p>")

    @pytest.mark.parametrize("status", [503, 429])
    async def test_refusing_load_is_rate_limited(self, test_settings, status):
        fetcher = make_fetcher(test_settings, lambda r: httpx.Response(status))

        result = await fetcher.fetch(1)

        assert result == RateLimited(status_code=status)

    async def test_connection_failure_is_transport_error(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(test_settings, handler)

        result = await fetcher.fetch(1)

        assert isinstance(result, TransportError)
        assert "ConnectError" in result.reason

    async def test_timeout_is_transport_error(self, test_settings):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = await make_fetcher(test_settings, handler).fetch(1)

        assert isinstance(result, TransportError)

    async def test_undecodable_body_is_transport_error(self, test_settings):
        def handler(request):
            return httpx.Response(
                200,
                headers={"Content-Encoding": "gzip", "Content-Type": "text/html"},
                content=b"definitely not gzip",
            )

        result = await make_fetcher(test_settings, handler).fetch(1)

        assert isinstance(result, TransportError)
        assert "DecodingError" in result.reason

    async def test_unknown_charset_is_decoded_leniently(self, test_settings):
        def handler(request):
            return httpx.Response(
                200,
                headers={"Content-Type": "text/html; charset=bogus"},
                content=b"\xff\xfe<p>hi</p>",
            )

        result = await make_fetcher(test_settings, handler).fetch(1)

        assert isinstance(result, PageFetched)
        assert "<p>hi</p>" in result.markup

    async def test_other_error_status_is_transport_error(self, test_settings):
        fetcher = make_fetcher(test_settings, lambda r: httpx.Response(404))

        result = await fetcher.fetch(1)

        assert isinstance(result, TransportError)
        assert "404" in result.reason
