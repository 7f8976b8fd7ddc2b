"""
Shared fixtures for the proxy test suite.

Provides a resolved configuration and a fake Shopify Admin API built on
httpx.MockTransport that records every request it receives.
"""

import sys
from pathlib import Path
from typing import Any, List, Optional

import httpx
import pytest

# Ensure the project root is on sys.path so tests can import project modules
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from proxy_config import ShopifyConfig  # noqa: E402

SHOP_DOMAIN = "demo.myshop.test"
ACCESS_TOKEN = "shpat_test_token"


class FakeShopify:
    """Answers the access-scopes and GraphQL endpoints of one shop."""

    def __init__(
        self,
        granted: Optional[List[str]] = None,
        graphql_response: Any = None,
        scopes_status: int = 200,
        graphql_status: int = 200,
        graphql_text: Optional[str] = None,
    ):
        self.granted = list(granted or [])
        self.graphql_response = {"data": {}} if graphql_response is None else graphql_response
        self.scopes_status = scopes_status
        self.graphql_status = graphql_status
        self.graphql_text = graphql_text
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/admin/oauth/access_scopes.json":
            if self.scopes_status != 200:
                return httpx.Response(self.scopes_status, text="scopes unavailable")
            return httpx.Response(200, json={"access_scopes": [{"handle": h} for h in self.granted]})

        if path.startswith("/admin/api/") and path.endswith("/graphql.json"):
            if self.graphql_text is not None:
                return httpx.Response(self.graphql_status, text=self.graphql_text)
            return httpx.Response(self.graphql_status, json=self.graphql_response)

        return httpx.Response(404, text="not found")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def scope_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("access_scopes.json")]

    @property
    def graphql_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/graphql.json")]


@pytest.fixture
def fake_shopify():
    """Factory fixture: fake_shopify(granted=[...], graphql_response={...})."""
    return FakeShopify


@pytest.fixture
def config():
    return ShopifyConfig(
        shop_domain=SHOP_DOMAIN,
        access_token=ACCESS_TOKEN,
        scopes="read_orders,read_products",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Clear every variable the proxy reads so tests start from nothing."""
    for key in [
        "SHOP_DOMAIN", "SHOP_ACCESS_TOKEN", "SHOPIFY_API_VERSION", "SHOPIFY_SCOPES",
        "SHOPIFY_GRAPHQL", "SERVER_HOST", "SERVER_PORT", "API_KEY", "LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
