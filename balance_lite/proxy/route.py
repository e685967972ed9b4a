import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from opentelemetry import trace
from starlette.background import BackgroundTask

from balance_lite.proxy.client import drop_client_defaults, get_http_client
from balance_lite.proxy.headers import (
    HOP_BY_HOP_HEADERS,
    encode_headers,
    has_body,
    sanitize_headers,
)
from balance_lite.proxy.key_pool import rotate_key
from balance_lite.settings import ProxySettings, get_app_settings
from balance_lite.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from balance_lite.utils.traced_requests import traced_request

router = APIRouter()
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

LIVENESS_MESSAGE = "Claude Balance Lite is Running."

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Max-Age": "86400",
}


def preflight_response() -> Response:
    """Answer a CORS preflight without contacting the upstream."""
    return Response(status_code=204, headers=dict(PREFLIGHT_HEADERS))


def get_target_url(request: Request, settings: ProxySettings) -> str:
    """Upstream URL with the inbound path and query string copied verbatim."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    if not path.startswith("/"):
        path = "/" + path

    query_string = request.url.query
    if query_string:
        path = f"{path}?{query_string}"

    return f"{settings.upstream_base_url}{path}"


def request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    """The inbound body as a lazy stream, or None when the request has none."""
    if not has_body(request.headers):
        return None
    return request.stream()


async def relay_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    """
    Stream the upstream body as received, without decoding.

    The upstream response is closed when the stream ends or fails. When the
    caller goes away mid-stream the response background task closes it.
    """
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


def build_relay_response(upstream: httpx.Response) -> StreamingResponse:
    """Copy status and headers of the upstream response and force open CORS."""
    response = StreamingResponse(
        relay_body(upstream),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    for name, value in upstream.headers.raw:
        name_lower = name.lower()
        if name_lower.decode("latin-1") in HOP_BY_HOP_HEADERS:
            continue
        response.raw_headers.append((name_lower, value))
    response.headers["access-control-allow-origin"] = "*"
    return response


def proxy_error_response(exception: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "type": "proxy_error",
                "message": format_exception_message(exception),
            }
        },
        headers={"Access-Control-Allow-Origin": "*"},
    )


async def forward_to_upstream(
    request: Request, client: httpx.AsyncClient, settings: ProxySettings
) -> Response:
    """
    Forward one inbound request to the upstream host.

    Headers are sanitized and the key pool is reduced to a single key; the
    request body and the upstream response body are streamed, never
    buffered. Transport failures become a 500 with a ``proxy_error`` body.
    Upstream error statuses are relayed as they are.
    """
    target_url = get_target_url(request, settings)

    with traced_request(
        tracer,
        operation="proxy_request",
        start_message=f"[Proxy] {request.method} {request.url.path} -> {target_url}",
        extra_attrs={"proxy.target_url": target_url, "proxy.method": request.method},
    ) as span:
        headers = sanitize_headers(request.headers.items(), settings)
        headers = rotate_key(headers, settings)

        try:
            outbound = client.build_request(
                request.method,
                target_url,
                headers=encode_headers(headers),
                content=request_body(request),
            )
            drop_client_defaults(outbound, headers)
            upstream = await client.send(outbound, stream=True, follow_redirects=True)

        except httpx.HTTPError as e:
            span.set_attribute("proxy.error", type(e).__name__)
            log_exception_with_details(
                logger, f"[Proxy] Upstream request to {target_url} failed:", e
            )
            return proxy_error_response(e)

        except Exception as e:
            span.set_attribute("proxy.error", type(e).__name__)
            log_exception_with_details(
                logger, f"[Proxy] Unexpected error forwarding to {target_url}:", e
            )
            return proxy_error_response(e)

        span.set_attribute("proxy.status_code", upstream.status_code)
        return build_relay_response(upstream)


async def liveness(request: Request):
    if request.method == "OPTIONS":
        return preflight_response()
    return PlainTextResponse(
        LIVENESS_MESSAGE, headers={"Access-Control-Allow-Origin": "*"}
    )


async def proxy_all(request: Request):
    """Catch-all route that proxies all requests to the upstream host."""
    if request.method == "OPTIONS":
        return preflight_response()
    return await forward_to_upstream(
        request, get_http_client(request), get_app_settings(request)
    )


# Plain Starlette routes match every method, including WebDAV and custom verbs.
# Include the router with app.mount: include_router would pin the methods.
router.add_route("/", liveness)
router.add_route("/{path:path}", proxy_all)
