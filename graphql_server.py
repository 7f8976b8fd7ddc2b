"""
GraphQL HTTP server in front of the Shopify Admin API.

Meant to be registered as the endpoint of a workflow tool's GraphQL plugin
(e.g. Dify):
    GraphQL Endpoint: http://your-server:3500/graphql
    Headers: {"Authorization": "Bearer <API_KEY>"}   (only if API_KEY is set)

Run with:
    shopify-graphql-server
"""

import hmac
import json
import logging
import sys
from typing import Any, Dict, Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from graphql_proxy import validate_and_query
from proxy_config import ShopifyConfig, configure_logging, resolve
from proxy_errors import MalformedRequest, ProxyError
from shopify_client import ShopifyClient

logger = logging.getLogger("graphql_server")

SERVICE_NAME = "shopify-graphql-proxy"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Answer to GET /graphql so GraphQL clients recognise the endpoint; not a real schema.
INTROSPECTION_STUB = {
    "data": {
        "__schema": {
            "description": "Shopify Admin GraphQL API Proxy",
            "queryType": {"name": "QueryRoot"},
            "mutationType": {"name": "Mutation"},
            "types": [],
        }
    }
}


# --- DATA MODELS ---
class GraphQLRequest(BaseModel):
    query: str
    variables: Optional[Dict[str, Any]] = None
    operationName: Optional[str] = None

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be empty")
        return v


# --- UTILITIES ---

def error_response(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse({"errors": [{"message": message}]}, status_code=status_code, headers=headers)


def verify_api_key(api_key: Optional[str], authorization: Optional[str]) -> bool:
    """
    Accepts "Bearer <key>" or the bare key. Without a configured key
    every request is accepted.
    """
    if not api_key:
        return True
    if not authorization:
        return False

    token = authorization[len("Bearer "):] if authorization.startswith("Bearer ") else authorization
    return hmac.compare_digest(token.encode("utf-8"), api_key.encode("utf-8"))


async def parse_graphql_body(request: Request) -> GraphQLRequest:
    body_bytes = await request.body()
    try:
        payload = json.loads(body_bytes)
    except ValueError:
        raise MalformedRequest("Invalid JSON body")

    if not isinstance(payload, dict):
        raise MalformedRequest("Request body must be a JSON object")

    try:
        return GraphQLRequest.model_validate(payload)
    except ValidationError as e:
        error = e.errors()[0]
        if error["loc"] and error["loc"][0] == "query":
            raise MalformedRequest("Missing or invalid 'query' field")
        field = ".".join(str(part) for part in error["loc"])
        raise MalformedRequest(f"Invalid '{field}' field: {error['msg']}")


def _preview(query: str, limit: int = 100) -> str:
    return query[:limit] + ("..." if len(query) > limit else "")


# --- APP ---

def create_app(config: ShopifyConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the proxy app around an already resolved configuration.
    `transport` is handed to the Shopify client (tests pass a mock transport).
    """
    app = FastAPI(
        title="Shopify GraphQL Proxy",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    @app.middleware("http")
    async def cors(request: Request, call_next):
        # Preflight for any path, before routing and authentication
        if request.method == "OPTIONS":
            return Response(status_code=204, headers={**CORS_HEADERS, "Access-Control-Max-Age": "86400"})
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            return error_response(500, str(e) or e.__class__.__name__, headers=CORS_HEADERS)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "Not found. Use /graphql endpoint for GraphQL queries."
        elif exc.status_code == 405:
            message = "Method not allowed. Use POST for GraphQL queries."
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(request: Request, exc: ProxyError):
        logger.error(str(exc))
        return error_response(exc.status_code, str(exc))

    # --- ROUTES ---

    @app.get("/")
    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/graphql")
    async def introspection():
        return INTROSPECTION_STUB

    @app.post("/graphql")
    async def graphql(request: Request, authorization: Optional[str] = Header(None)):
        if not verify_api_key(config.api_key, authorization):
            raise HTTPException(status_code=401, detail="Unauthorized: Invalid or missing API key")

        body = await parse_graphql_body(request)
        logger.info(f"GraphQL request received: {_preview(body.query)}")

        client = ShopifyClient.from_config(config, transport=transport)
        data = await validate_and_query(config, body.query, body.variables, client=client)

        logger.info("Query succeeded")
        return {"data": data}

    return app


def log_banner(config: ShopifyConfig) -> None:
    base = f"http://localhost:{config.server_port}"
    lines = [
        "=" * 60,
        "Shopify GraphQL Proxy Server",
        "=" * 60,
        f"Listening on: http://{config.server_host}:{config.server_port}",
        f"GraphQL endpoint: {base}/graphql",
        f"Health check: {base}/health",
        f"Shop domain: {config.shop_domain}",
        f"API key auth: {'enabled' if config.api_key else 'disabled'}",
        "",
        "Example request:",
        f"  curl -X POST {base}/graphql \\",
        '    -H "Content-Type: application/json" \\',
    ]
    if config.api_key:
        lines.append('    -H "Authorization: Bearer <your-api-key>" \\')
    lines.append("""    -d '{"query": "query { shop { name } }"}'""")
    lines.append("=" * 60)
    for line in lines:
        logger.info(line)


def main() -> int:
    load_dotenv()
    configure_logging()

    try:
        config = resolve()
    except ProxyError as e:
        logger.error(str(e))
        return 1

    log_banner(config)
    uvicorn.run(create_app(config), host=config.server_host, port=config.server_port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
