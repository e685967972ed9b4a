import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "balance-lite")
HOST = os.environ.get("HOSTNAME", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8787"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

UPSTREAM_HOST = os.environ.get("UPSTREAM_HOST", "api.anthropic.com")
DEFAULT_ANTHROPIC_VERSION = os.environ.get("DEFAULT_ANTHROPIC_VERSION", "2023-06-01")
KEY_HEADER = os.environ.get("KEY_HEADER", "x-api-key").lower()
VERSION_HEADER = os.environ.get("VERSION_HEADER", "anthropic-version").lower()
# Empty disables content-type defaulting for bodies sent without one
DEFAULT_CONTENT_TYPE = os.environ.get("DEFAULT_CONTENT_TYPE", "application/json")
PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "300"))

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
