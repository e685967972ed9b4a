from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request

from balance_lite import vars as env


@dataclass(frozen=True)
class ProxySettings:
    """
    Immutable proxy configuration, built once at startup.

    Attributes:
        upstream_host: Host every request is forwarded to (always over https)
        default_version: Version header value used when the caller sends none
        key_header: Header carrying the comma separated credential pool
        version_header: Header identifying the upstream API version
        default_content_type: Content type assumed for bodies without one,
            empty to leave such requests untouched
        proxy_timeout: Outbound timeout in seconds
    """

    upstream_host: str = "api.anthropic.com"
    default_version: str = "2023-06-01"
    key_header: str = "x-api-key"
    version_header: str = "anthropic-version"
    default_content_type: str = "application/json"
    proxy_timeout: float = 300.0

    @property
    def upstream_base_url(self) -> str:
        return f"https://{self.upstream_host}"


def load_settings() -> ProxySettings:
    return ProxySettings(
        upstream_host=env.UPSTREAM_HOST,
        default_version=env.DEFAULT_ANTHROPIC_VERSION,
        key_header=env.KEY_HEADER,
        version_header=env.VERSION_HEADER,
        default_content_type=env.DEFAULT_CONTENT_TYPE,
        proxy_timeout=env.PROXY_TIMEOUT,
    )


@lru_cache(maxsize=1)
def get_settings() -> ProxySettings:
    """Process-wide settings, read from the environment once."""
    return load_settings()


def get_app_settings(request: Request) -> ProxySettings:
    """Settings attached to the serving app, else the process-wide ones."""
    return getattr(request.app.state, "settings", None) or get_settings()
