from typing import Callable, List, Optional

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from balance_lite.proxy import create_http_client, router
from balance_lite.settings import ProxySettings


def upstream_response(
    status_code: int = 200, body: bytes = b"", headers: Optional[dict] = None
) -> httpx.Response:
    """A streamed response, as a real transport returns it (not pre-read)."""
    headers = dict(headers or {})
    headers.setdefault("content-length", str(len(body)))
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(body))


class FakeUpstream:
    """Records outbound requests and answers them with a configurable handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: (
            upstream_response(
                200, b'{"ok":true}', {"content-type": "application/json"}
            )
        )

    def respond(
        self, status_code: int = 200, body: bytes = b"", headers: Optional[dict] = None
    ) -> None:
        self.handler = lambda request: upstream_response(status_code, body, headers)

    def fail_with(self, exception: Exception) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exception

        self.handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None


@pytest.fixture
def settings():
    return ProxySettings()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def proxy_app(settings, upstream):
    """A FastAPI app with the proxy router and a mocked outbound transport."""
    test_app = FastAPI()
    test_app.state.settings = settings
    test_app.state.http_client = create_http_client(
        settings, transport=httpx.MockTransport(upstream)
    )
    test_app.mount("/", router)
    return test_app


@pytest.fixture
def client(proxy_app):
    return TestClient(proxy_app)
