import httpx
import pytest

from balance_lite.proxy.client import create_http_client, drop_client_defaults


class TestDropClientDefaults:
    @pytest.mark.asyncio
    async def test_defaults_removed_when_not_forwarded(self, settings):
        async with create_http_client(settings) as client:
            outbound = client.build_request("GET", "https://api.anthropic.com/v1/models")

            drop_client_defaults(outbound, {})

        assert "user-agent" not in outbound.headers
        assert "accept" not in outbound.headers
        assert "accept-encoding" not in outbound.headers

    @pytest.mark.asyncio
    async def test_forwarded_values_kept(self, settings):
        forwarded = {"user-agent": "my-sdk/1.0", "accept-encoding": "identity"}

        async with create_http_client(settings) as client:
            outbound = client.build_request(
                "GET", "https://api.anthropic.com/v1/models", headers=forwarded
            )

            drop_client_defaults(outbound, forwarded)

        assert outbound.headers["user-agent"] == "my-sdk/1.0"
        assert outbound.headers["accept-encoding"] == "identity"
        assert "accept" not in outbound.headers


class TestCreateHttpClient:
    @pytest.mark.asyncio
    async def test_upstream_cookies_not_replayed(self, settings, upstream):
        upstream.respond(
            200, b"", {"set-cookie": "session=abc; Domain=api.anthropic.com; Path=/"}
        )
        client = create_http_client(settings, transport=httpx.MockTransport(upstream))

        async with client:
            await client.get("https://api.anthropic.com/v1/models")
            await client.get("https://api.anthropic.com/v1/models")

        assert "cookie" not in upstream.last.headers
        assert len(client.cookies) == 0

    @pytest.mark.asyncio
    async def test_timeout_from_settings(self):
        from balance_lite.settings import ProxySettings

        async with create_http_client(ProxySettings(proxy_timeout=12.5)) as client:
            assert client.timeout.read == 12.5
            assert client.timeout.connect == 12.5
