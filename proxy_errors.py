import json
from typing import Any, List, Optional


class ProxyError(Exception):
    """
    Base class for every failure the proxy reports to its caller.
    `status_code` is the HTTP status the server answers with.
    """
    status_code = 500


class MissingConfiguration(ProxyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing required configuration: {name}")


class AuthorizationError(ProxyError):
    def __init__(self, missing_scopes: List[str]):
        self.missing_scopes = list(missing_scopes)
        super().__init__(
            f"Shopify app is missing the following scopes: {', '.join(self.missing_scopes)}. "
            "Reinstall the app to grant these scopes."
        )


class UpstreamUnavailable(ProxyError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.upstream_status = status_code
        self.body = body
        super().__init__(message)


class GraphQLExecutionError(ProxyError):
    def __init__(self, errors: Any):
        self.errors = errors
        super().__init__(f"Shopify GraphQL errors: {json.dumps(errors, ensure_ascii=False)}")


class MalformedRequest(ProxyError):
    status_code = 400
