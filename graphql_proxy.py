"""
Validate-and-query orchestration shared by the CLI and the HTTP server.
"""

import logging
from typing import Any, Dict, Optional

from proxy_config import ShopifyConfig
from proxy_errors import AuthorizationError
from shopify_client import ShopifyClient

logger = logging.getLogger(__name__)


async def validate_and_query(
    config: ShopifyConfig,
    query: str,
    variables: Optional[Dict[str, Any]] = None,
    client: Optional[ShopifyClient] = None,
) -> Any:
    """
    Check the token's scopes, then run the query.

    No query traffic is sent when a required scope is missing; an
    AuthorizationError listing the missing scopes is raised instead.
    """
    client = client or ShopifyClient.from_config(config)

    logger.info("Checking Shopify access scopes...")
    missing = await client.get_missing_scopes(config.required_scopes)
    if missing:
        raise AuthorizationError(missing)

    logger.info(f"Scopes granted, calling Shopify ({config.shop_domain}, {config.api_version})...")
    return await client.execute_query(query, variables)
