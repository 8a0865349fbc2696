"""Unit tests for the HTTP transport and relay fallback."""

from __future__ import annotations

import httpx
import pytest

from printprep.exceptions import FetchFailureError, FetchTimeoutError
from printprep.fetch import FetchedImage, HttpImageTransport, ImageTransport, read_source
from printprep.proxy import EffectiveSource, SourceMode

PNG = b"\x89PNG\r\n\x1a\nfake"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpImageTransport:
    """Tests for HttpImageTransport.fetch()."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["accept"] == "image/*"
            return httpx.Response(200, content=PNG, headers={"content-type": "image/png"})

        async with _client(handler) as client:
            transport = HttpImageTransport(client=client)
            fetched = await transport.fetch("https://img.test/a.png")

        assert fetched == FetchedImage(PNG, "image/png", "https://img.test/a.png")

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        async with _client(lambda request: httpx.Response(503)) as client:
            transport = HttpImageTransport(client=client)
            with pytest.raises(FetchFailureError) as exc_info:
                await transport.fetch("https://img.test/a.png")

        assert exc_info.value.status_code == 503
        assert exc_info.value.locator == "https://img.test/a.png"
        assert exc_info.value.kind == "fetch_failure"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            transport = HttpImageTransport(client=client)
            with pytest.raises(FetchFailureError) as exc_info:
                await transport.fetch("https://img.test/a.png")

        assert exc_info.value.status_code is None
        assert "ConnectError" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            transport = HttpImageTransport(client=client)
            with pytest.raises(FetchTimeoutError):
                await transport.fetch("https://img.test/a.png")

    @pytest.mark.asyncio
    async def test_caller_client_is_not_closed(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=PNG))
        async with HttpImageTransport(client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self) -> None:
        transport = HttpImageTransport()
        async with transport:
            pass
        assert transport._client.is_closed

    def test_satisfies_protocol(self) -> None:
        assert isinstance(HttpImageTransport(client=_client(lambda r: httpx.Response(200))), ImageTransport)


class TestReadSource:
    """Tests for read_source() relay fallback."""

    @pytest.mark.asyncio
    async def test_relay_error_status_falls_back_to_direct(self, stub_transport) -> None:
        direct = FetchedImage(PNG, "image/png", "https://cdn.test/a.png")
        transport = stub_transport({"https://cdn.test/a.png": direct})
        source = EffectiveSource(
            SourceMode.FETCH, "https://relay.test/?url=x", fallback_url="https://cdn.test/a.png"
        )

        assert await read_source(transport, source) == direct
        assert transport.calls == ["https://relay.test/?url=x", "https://cdn.test/a.png"]

    @pytest.mark.asyncio
    async def test_relay_transport_error_is_not_retried(self, stub_transport) -> None:
        error = FetchFailureError("Transport error", locator="https://relay.test/?url=x")
        transport = stub_transport({"https://relay.test/?url=x": error})
        source = EffectiveSource(
            SourceMode.FETCH, "https://relay.test/?url=x", fallback_url="https://cdn.test/a.png"
        )

        with pytest.raises(FetchFailureError):
            await read_source(transport, source)
        assert transport.calls == ["https://relay.test/?url=x"]

    @pytest.mark.asyncio
    async def test_unrelayed_error_propagates(self, stub_transport) -> None:
        transport = stub_transport()
        source = EffectiveSource(SourceMode.FETCH, "https://trusted.test/a.png")

        with pytest.raises(FetchFailureError) as exc_info:
            await read_source(transport, source)
        assert exc_info.value.status_code == 404
        assert transport.calls == ["https://trusted.test/a.png"]
