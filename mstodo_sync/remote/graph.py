"""
Microsoft Graph request execution.

Every Graph call is described by an immutable ``GraphRequest`` and run
through ``GraphClient.execute``, which owns authentication headers,
retry with exponential backoff and error classification.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from ..core.exceptions import AuthenticationError, RemoteError, TransientRemoteError


DEFAULT_BASE_URL = "https://graph.microsoft.com/v1.0"
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
AUTH_STATUS = frozenset({401, 403})


@dataclass(frozen=True)
class GraphRequest:
    """Description of one Graph call.

    ``endpoint`` is either a path relative to the client's base URL
    (``/me/todo/lists``) or an absolute URL such as an
    ``@odata.nextLink`` / ``@odata.deltaLink``.
    """

    method: str
    endpoint: str
    params: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None

    @classmethod
    def get(cls, endpoint: str, params: Optional[Dict[str, Any]] = None) -> GraphRequest:
        return cls("GET", endpoint, params=params)

    @classmethod
    def post(cls, endpoint: str, body: Dict[str, Any]) -> GraphRequest:
        return cls("POST", endpoint, body=body)

    @classmethod
    def patch(cls, endpoint: str, body: Dict[str, Any]) -> GraphRequest:
        return cls("PATCH", endpoint, body=body)

    @property
    def is_absolute(self) -> bool:
        return self.endpoint.startswith(("http://", "https://"))


@dataclass
class RetryPolicy:
    """Exponential backoff schedule for transient Graph failures."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if retry_after:
            try:
                return min(max(float(retry_after), 0.0), self.max_delay)
            except ValueError:
                pass
        delay = self.base_delay * (self.multiplier ** max(attempt - 1, 0))
        return min(delay, self.max_delay)

    def should_retry(self, attempt: int) -> bool:
        return attempt < max(self.max_attempts, 1)


class GraphClient:
    """Executes ``GraphRequest`` values against Microsoft Graph."""

    def __init__(self, token_provider, base_url: str = DEFAULT_BASE_URL,
                 timeout: float = 30.0, retry_policy: Optional[RetryPolicy] = None,
                 http_client: Optional[httpx.Client] = None,
                 logger: Optional[logging.Logger] = None):
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> GraphClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _url_for(self, request: GraphRequest) -> str:
        if request.is_absolute:
            return request.endpoint
        return f"{self.base_url}/{request.endpoint.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        token = self.token_provider.get_token()
        if not token:
            raise AuthenticationError("No Microsoft Graph access token available")
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def execute(self, request: GraphRequest) -> Dict[str, Any]:
        """Run ``request`` and return the decoded JSON body (``{}`` for 204)."""
        url = self._url_for(request)
        attempt = 0

        while True:
            attempt += 1
            headers = self._headers()
            try:
                response = self._http.request(
                    request.method,
                    url,
                    params=request.params,
                    json=request.body,
                    headers=headers,
                )
            except httpx.TransportError as exc:
                if self.retry_policy.should_retry(attempt):
                    delay = self.retry_policy.delay_for(attempt)
                    self.logger.warning(
                        "%s %s failed (%s); retrying in %.1fs", request.method, url, exc, delay
                    )
                    self.retry_policy.sleep(delay)
                    continue
                raise TransientRemoteError(
                    f"{request.method} {url} failed after {attempt} attempts: {exc}"
                ) from exc

            status = response.status_code
            if status in AUTH_STATUS:
                raise AuthenticationError(
                    f"Graph rejected the access token ({status}); re-authenticate",
                    status_code=status,
                )

            if status in RETRYABLE_STATUS:
                if self.retry_policy.should_retry(attempt):
                    delay = self.retry_policy.delay_for(
                        attempt, response.headers.get("Retry-After")
                    )
                    self.logger.warning(
                        "%s %s returned %s; retrying in %.1fs", request.method, url, status, delay
                    )
                    self.retry_policy.sleep(delay)
                    continue
                raise TransientRemoteError(
                    f"{request.method} {url} returned {status} after {attempt} attempts",
                    status_code=status,
                )

            if status >= 400:
                raise RemoteError(
                    f"{request.method} {url} returned {status}: {_error_message(response)}",
                    status_code=status,
                )

            self.logger.debug("%s %s -> %s", request.method, url, status)
            if status == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise RemoteError(
                    f"{request.method} {url} returned invalid JSON", status_code=status
                ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or str(error)
    return str(payload)[:200]
