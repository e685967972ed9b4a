"""
Credential pool parsing and per-request key selection.

Callers send several upstream keys in one header, separated by ASCII or
full-width commas. Each request gets one of them, chosen uniformly at random.
Nothing about the pool or the chosen key outlives the request.
"""

import logging
import random
import re
from typing import Dict, List, Optional

from opentelemetry import trace

from balance_lite.proxy.headers import decode_header_text
from balance_lite.settings import ProxySettings
from balance_lite.utils import mask_key

logger = logging.getLogger("uvicorn.error")

KEY_SEPARATOR = re.compile(r"[,，]")


def parse_key_pool(value: Optional[str]) -> List[str]:
    """Split a key header value into trimmed, non-empty keys."""
    if not value:
        return []
    return [key.strip() for key in KEY_SEPARATOR.split(value) if key.strip()]


def select_key(pool: List[str], rng: Optional[random.Random] = None) -> str:
    if not pool:
        raise ValueError("Cannot select a key from an empty pool")
    return (rng or random).choice(pool)


def rotate_key(
    headers: Dict[str, str],
    settings: ProxySettings,
    rng: Optional[random.Random] = None,
) -> Dict[str, str]:
    """
    Replace the key header's pool with a single key drawn from it.

    Headers without the key header, or whose value parses to an empty pool,
    are returned untouched.
    """
    raw_value = headers.get(settings.key_header)
    if not raw_value:
        return headers

    pool = parse_key_pool(decode_header_text(raw_value))
    if not pool:
        return headers

    selected = select_key(pool, rng)
    # Back to the latin-1 form Starlette uses for the other header values
    headers[settings.key_header] = selected.encode("utf-8").decode("latin-1")

    trace.get_current_span().set_attribute("proxy.key_pool_size", len(pool))
    logger.info(
        f"[Load Balance] Pool size: {len(pool)}, Selected Key ending in: ...{mask_key(selected)}"
    )
    return headers
