"""
Key-rotating reverse proxy for a single upstream API host.

Every inbound request is forwarded to the configured upstream over https.
When the key header carries several comma separated keys (ASCII or
full-width commas), one of them is picked at random for that request only.

Example usage with curl:
    curl -N http://localhost:8787/v1/messages \\
         -H "x-api-key: sk-ant-1, sk-ant-2，sk-ant-3" \\
         -H "content-type: application/json" \\
         -d '{"model": "claude-sonnet-4-5", "max_tokens": 64, "stream": true,
              "messages": [{"role": "user", "content": "Hello"}]}'
"""

from .route import router, forward_to_upstream
from .client import create_http_client, get_http_client

__all__ = [
    "router",
    "forward_to_upstream",
    "create_http_client",
    "get_http_client",
]
