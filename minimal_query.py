"""
Minimal Shopify GraphQL runner.

Usage:
    shopify-query 'query { shop { name } }'
    shopify-query --variables '{"first": 5}' 'query ($first: Int!) { products(first: $first) { nodes { id } } }'

Without a query argument the SHOPIFY_GRAPHQL environment variable is used.
The script validates the configuration, checks the token's scopes, runs the
query and prints the JSON result to stdout. Progress and errors go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from graphql_proxy import validate_and_query
from proxy_config import configure_logging, resolve
from proxy_errors import MissingConfiguration, ProxyError

logger = logging.getLogger("minimal_query")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one Shopify Admin GraphQL query after checking scopes")
    parser.add_argument("query", nargs="?", help="GraphQL query (default: $SHOPIFY_GRAPHQL)")
    parser.add_argument("--variables", type=json_object, help="GraphQL variables as a JSON object")
    return parser


def json_object(raw: str) -> Dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e.msg}")
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return value


async def run(query: Optional[str], variables: Optional[Dict[str, Any]] = None) -> Any:
    config = resolve()
    query = (query or "").strip() or config.query
    if not query:
        raise MissingConfiguration("SHOPIFY_GRAPHQL")
    return await validate_and_query(config, query, variables)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        data = asyncio.run(run(args.query, args.variables))
    except ProxyError as e:
        logger.error(str(e).replace("\n", " "))
        return 1
    except Exception as e:
        logger.error(f"{e.__class__.__name__}: {e}".replace("\n", " "))
        return 1

    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
