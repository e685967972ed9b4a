from typing import Dict, Iterable, Mapping, Tuple, Union

from balance_lite.settings import ProxySettings

# Hop-by-hop headers that should NOT be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Headers added by the edge network in front of the proxy. The upstream would
# read them as routing artifacts of an unrelated hop.
STRIPPED_HEADERS = {
    "host",
    "x-forwarded-host",
    "cf-connecting-ip",
    "cf-ipcountry",
    "x-real-ip",
    "x-forwarded-for",
    "x-forwarded-proto",
}

# Repeated cookie fields are joined the way HTTP/2 splits them back (RFC 9113 8.2.3)
COOKIE_SEPARATOR = "; "

HeaderSource = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def _items(headers: HeaderSource):
    if isinstance(headers, Mapping):
        return headers.items()
    return headers


def has_body(headers: Mapping[str, str]) -> bool:
    """Whether lower-cased request headers announce a request body."""
    if "chunked" in headers.get("transfer-encoding", "").lower():
        return True
    content_length = headers.get("content-length", "").strip()
    return bool(content_length) and content_length != "0"


def sanitize_headers(headers: HeaderSource, settings: ProxySettings) -> Dict[str, str]:
    """
    Prepare inbound headers for the upstream.

    Repeated fields are combined into one value. Drops edge-network and
    hop-by-hop headers, addresses the request to the upstream host and
    supplements the version header (and, for requests with a body, the
    content type) when the caller did not send one.
    """
    result: Dict[str, str] = {}
    body_framing: Dict[str, str] = {}

    for name, value in _items(headers):
        name_lower = name.lower()
        if name_lower in ("content-length", "transfer-encoding"):
            body_framing[name_lower] = value
        if name_lower in HOP_BY_HOP_HEADERS or name_lower in STRIPPED_HEADERS:
            continue
        if name_lower in result:
            separator = COOKIE_SEPARATOR if name_lower == "cookie" else ", "
            value = f"{result[name_lower]}{separator}{value}"
        result[name_lower] = value

    result["host"] = settings.upstream_host

    if not result.get(settings.version_header):
        result[settings.version_header] = settings.default_version

    if (
        settings.default_content_type
        and not result.get("content-type")
        and has_body(body_framing)
    ):
        result["content-type"] = settings.default_content_type

    return result


def decode_header_text(value: str) -> str:
    """
    Recover the text of a header value as sent by the client.

    Starlette decodes header bytes as latin-1, which turns UTF-8 text such as
    a full-width comma into mojibake. Values that are not valid UTF-8 are
    returned as they are.
    """
    try:
        return value.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return value


def encode_header_value(value: str) -> bytes:
    # latin-1 restores the exact bytes Starlette received
    try:
        return value.encode("latin-1")
    except UnicodeEncodeError:
        return value.encode("utf-8")


def encode_headers(headers: Mapping[str, str]) -> Dict[str, bytes]:
    return {name: encode_header_value(value) for name, value in headers.items()}
