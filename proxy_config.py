"""
Configuration for the Shopify GraphQL proxy.

Values come from environment variables (optionally loaded from a .env file
by the entry points):

- SHOP_DOMAIN: shop domain, e.g. `your-store.myshopify.com` (required)
- SHOP_ACCESS_TOKEN: Admin API access token (required)
- SHOPIFY_API_VERSION: Admin API version, default 2024-10
- SHOPIFY_SCOPES: comma-separated scopes the token must hold
- SHOPIFY_GRAPHQL: query used by the CLI when none is passed as an argument
- SERVER_HOST / SERVER_PORT: bind address of the HTTP server
- API_KEY: shared secret required by the HTTP server, if set
- LOG_LEVEL: logging level, default INFO
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from proxy_errors import MissingConfiguration

# --- DEFAULTS ---
DEFAULT_SCOPES = "read_orders,read_products,read_customers,read_inventory"
DEFAULT_API_VERSION = "2024-10"
DEFAULT_SERVER_HOST = "0.0.0.0"
DEFAULT_SERVER_PORT = 3500


def parse_scopes(raw: Optional[str]) -> List[str]:
    """Split a comma-separated scope list, dropping blanks and repeats."""
    scopes = DEFAULT_SCOPES if raw is None else raw
    result: List[str] = []
    for scope in scopes.split(","):
        scope = scope.strip()
        if scope and scope not in result:
            result.append(scope)
    return result


def normalize_domain(domain: str) -> str:
    d = domain.strip().replace("https://", "").replace("http://", "")
    return d.rstrip("/")


@dataclass(frozen=True)
class ShopifyConfig:
    shop_domain: str
    access_token: str = field(repr=False)
    api_version: str = DEFAULT_API_VERSION
    scopes: Optional[str] = None
    query: Optional[str] = None
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT
    api_key: Optional[str] = field(default=None, repr=False)

    @property
    def required_scopes(self) -> List[str]:
        return parse_scopes(self.scopes)


def _optional(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_env(name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    value = _optional(environ, name)
    if not value:
        raise MissingConfiguration(name)
    return value


def _port(environ: Mapping[str, str]) -> int:
    raw = _optional(environ, "SERVER_PORT")
    if raw is None:
        return DEFAULT_SERVER_PORT
    try:
        port = int(raw)
    except ValueError:
        raise MissingConfiguration("SERVER_PORT (expected an integer)")
    if not (1 <= port <= 65535):
        raise MissingConfiguration("SERVER_PORT (expected 1-65535)")
    return port


def resolve(environ: Optional[Mapping[str, str]] = None) -> ShopifyConfig:
    """
    Build the immutable configuration.
    Raises MissingConfiguration if the shop domain or access token is blank.
    """
    environ = os.environ if environ is None else environ

    shop_domain = normalize_domain(require_env("SHOP_DOMAIN", environ))
    if not shop_domain:
        raise MissingConfiguration("SHOP_DOMAIN")

    # Set but blank means no scopes are required; unset means DEFAULT_SCOPES.
    scopes = environ.get("SHOPIFY_SCOPES")

    return ShopifyConfig(
        shop_domain=shop_domain,
        access_token=require_env("SHOP_ACCESS_TOKEN", environ),
        api_version=_optional(environ, "SHOPIFY_API_VERSION") or DEFAULT_API_VERSION,
        scopes=scopes,
        query=_optional(environ, "SHOPIFY_GRAPHQL"),
        server_host=_optional(environ, "SERVER_HOST") or DEFAULT_SERVER_HOST,
        server_port=_port(environ),
        api_key=_optional(environ, "API_KEY"),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr so stdout stays clean for JSON output."""
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
        format="[%(levelname)s] %(message)s",
    )
