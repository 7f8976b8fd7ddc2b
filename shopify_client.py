import httpx
import logging
from typing import Any, Dict, List, Optional, Set

from proxy_config import DEFAULT_API_VERSION, ShopifyConfig, normalize_domain
from proxy_errors import GraphQLExecutionError, UpstreamUnavailable

# Configure module-level logger
logger = logging.getLogger("shopify_client")


class ShopifyClient:
    """
    Async client for the Shopify Admin API: reads the token's granted scopes
    and forwards GraphQL documents verbatim. No retries.
    """
    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.shop_domain = normalize_domain(shop_domain)
        self.access_token = access_token
        self.api_version = api_version
        self.graphql_url = f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"
        self.scopes_url = f"https://{self.shop_domain}/admin/oauth/access_scopes.json"
        self.headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._transport = transport
        self._timeout = timeout

    @classmethod
    def from_config(
        cls, config: ShopifyConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ShopifyClient":
        return cls(config.shop_domain, config.access_token, config.api_version, transport=transport)

    def _client(self) -> httpx.AsyncClient:
        if self._timeout is None:
            return httpx.AsyncClient(transport=self._transport)
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _send(self, method: str, url: str, what: str, **kwargs) -> Any:
        """
        Issue one request and return the parsed JSON body.
        Transport failures, non-2xx statuses and non-JSON bodies raise UpstreamUnavailable.
        """
        async with self._client() as client:
            try:
                response = await client.request(method, url, headers=self.headers, **kwargs)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.error(f"Request Error ({what}): {e!r}")
                raise UpstreamUnavailable(f"{what} failed: {e}") from e

        if not response.is_success:
            logger.error(f"HTTP Error ({what}): {response.status_code}")
            raise UpstreamUnavailable(
                f"{what} failed ({response.status_code} {response.reason_phrase}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"{what} returned a non-JSON body ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    # ---------------------------------------------------------
    # SCOPES
    # ---------------------------------------------------------

    async def get_granted_scopes(self) -> Set[str]:
        payload = await self._send("GET", self.scopes_url, "Fetching Shopify access scopes")

        access_scopes = payload.get("access_scopes") if isinstance(payload, dict) else None
        if not isinstance(access_scopes, list):
            raise UpstreamUnavailable(
                f"Unexpected access scopes response: {str(payload)[:200]}",
                body=str(payload),
            )

        granted = set()
        for scope in access_scopes:
            handle = scope.get("handle") if isinstance(scope, dict) else None
            if isinstance(handle, str) and handle.strip():
                granted.add(handle.strip())
        return granted

    async def get_missing_scopes(self, required_scopes: List[str]) -> List[str]:
        """
        Return the required scopes the token does not hold, in the order given.
        An empty list means every scope is granted.
        """
        granted = await self.get_granted_scopes()
        missing = [scope for scope in required_scopes if scope not in granted]
        logger.debug(f"Granted scopes: {sorted(granted)}; missing: {missing}")
        return missing

    # ---------------------------------------------------------
    # GRAPHQL
    # ---------------------------------------------------------

    async def execute_query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        payload: Dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables
        json_res = await self._send("POST", self.graphql_url, "Shopify API request", json=payload)

        if not isinstance(json_res, dict):
            return json_res

        # GraphQL-level errors come back with 200 OK; they win over any partial data
        errors = json_res.get("errors")
        if errors:
            logger.error(f"GraphQL Errors: {errors}")
            raise GraphQLExecutionError(errors)

        if json_res.get("data") is None:
            logger.warning("Shopify response has no 'data' field, returning the raw payload")
            return json_res
        return json_res["data"]
