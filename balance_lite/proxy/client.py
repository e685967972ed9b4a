from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Mapping, Optional

import httpx
from fastapi import Request

from balance_lite.settings import ProxySettings

# Headers httpx adds on its own when the caller did not send them
CLIENT_DEFAULT_HEADERS = ("accept", "accept-encoding", "user-agent")


def create_http_client(
    settings: ProxySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the outbound client shared by all requests.

    The client only pools connections. Its cookie jar refuses every cookie so
    that a Set-Cookie from one caller's response is never replayed on behalf
    of another caller.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.proxy_timeout),
        cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
        transport=transport,
    )


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The shared client opened by the app lifespan."""
    return request.app.state.http_client


def drop_client_defaults(
    outbound: httpx.Request, forwarded: Mapping[str, str]
) -> httpx.Request:
    for name in CLIENT_DEFAULT_HEADERS:
        if name not in forwarded and name in outbound.headers:
            del outbound.headers[name]
    return outbound
