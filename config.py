"""
Server configuration from environment variables.

Environment Variables:
- SPACE_ID: Contentful space id (tools may override it per call)
- ENVIRONMENT_ID: Contentful environment (default "master")
- CONTENTFUL_DELIVERY_ACCESS_TOKEN: Content Delivery API token (required)
- ENABLE_HTTP_SERVER: "true" to serve MCP over HTTP instead of stdio
- HTTP_PORT: HTTP port (default 3000)
- HTTP_HOST: HTTP host (default localhost)
- GRAPHQL_REQUEST_TIMEOUT: outbound request timeout in seconds (default 30)
- CACHE_REFRESH_INTERVAL: metadata cache refresh interval in seconds (default 300)
"""

import os
from typing import Optional

from pydantic import BaseModel

DEFAULT_ENVIRONMENT_ID = "master"


class ConfigurationError(Exception):
    pass


class ServerConfig(BaseModel):
    space_id: Optional[str] = None
    environment_id: str = DEFAULT_ENVIRONMENT_ID
    access_token: Optional[str] = None
    enable_http: bool = False
    http_port: str = "3000"
    http_host: str = "localhost"
    request_timeout: float = 30.0
    refresh_interval: float = 300.0


def load_config() -> ServerConfig:
    return ServerConfig(
        space_id=os.getenv("SPACE_ID") or None,
        environment_id=os.getenv("ENVIRONMENT_ID") or DEFAULT_ENVIRONMENT_ID,
        access_token=os.getenv("CONTENTFUL_DELIVERY_ACCESS_TOKEN") or None,
        enable_http=os.getenv("ENABLE_HTTP_SERVER", "").lower() == "true",
        http_port=os.getenv("HTTP_PORT") or "3000",
        http_host=os.getenv("HTTP_HOST") or "localhost",
        request_timeout=float(os.getenv("GRAPHQL_REQUEST_TIMEOUT") or 30.0),
        refresh_interval=float(os.getenv("CACHE_REFRESH_INTERVAL") or 300.0),
    )


def validate_environment(config: ServerConfig) -> int:
    """
    Check the settings the server cannot start without.

    Returns the HTTP port as an int; raises ConfigurationError otherwise.
    """
    if not config.access_token:
        raise ConfigurationError("CONTENTFUL_DELIVERY_ACCESS_TOKEN must be set for GraphQL operations")

    try:
        port = int(config.http_port)
    except ValueError:
        port = -1
    if config.enable_http and not 1 <= port <= 65535:
        raise ConfigurationError("HTTP_PORT must be a valid port number (1-65535)")
    return port
