"""DCN catalog API client - Core transport and authenticated requests."""

import json
from typing import Any
from urllib.parse import quote

import httpx

from ..models import (
    APIConfiguration,
    AuthenticationError,
    FetchError,
    InvalidNameError,
    NetworkError,
    NotFoundError,
)
from .auth import LoginHandler, TokenStore, get_token_store
from .log_utils import _ClientLogger, log_event


def require_name(value: str | None, what: str = "name") -> str:
    """Return the trimmed name or raise InvalidNameError when it is empty."""
    name = (value or "").strip()
    if not name:
        raise InvalidNameError(f"{what} is required")
    return name


def format_json(text: str) -> str:
    """Pretty-print a JSON document; return anything else unchanged."""
    try:
        return json.dumps(json.loads(text), indent=2)
    except (json.JSONDecodeError, TypeError):
        return text


class CatalogClientCore:
    """Core catalog API client - authenticated transport and definition fetches."""

    def __init__(
        self,
        config: APIConfiguration,
        login_handler: LoginHandler | None = None,
        token_store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the catalog API client."""
        self.config = config
        self.base_url = config.base_url
        self.login_handler = login_handler
        self.token_store = token_store or get_token_store()
        if config.access_token is not None and self.token_store.get() is None:
            self.token_store.set(config.access_token.get_secret_value())
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = _ClientLogger()

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CatalogClientCore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _build_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        include_cookies: bool,
        **kwargs: Any,
    ) -> httpx.Request:
        request = self.client.build_request(method, url, headers=headers, **kwargs)

        token = self.token_store.get()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

        # Cookies stay home unless the caller opts in
        if not include_cookies and "Cookie" in request.headers:
            del request.headers["Cookie"]

        return request

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        include_cookies: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request with the bearer token, retrying once after a 401 login.

        The first response is returned unless it is a 401 and the injected
        login handler reports a fresh token; then the request is rebuilt with
        that token and sent exactly once more, and that second response is
        returned whatever its status.

        Args:
            method: HTTP method
            url: Path relative to the base URL (or an absolute URL)
            headers: Extra request headers
            include_cookies: Forward the client's cookie jar (off by default)
            **kwargs: Passed to httpx (json, params, content, ...)
        """
        try:
            request = self._build_request(method, url, headers, include_cookies, **kwargs)
            response = await self.client.send(request)
        except httpx.HTTPError as err:
            raise NetworkError(f"{method} {url} failed: {err}") from err

        if response.status_code != 401 or self.login_handler is None:
            return response

        self._logger.info(f"{method} {url} unauthorized; attempting login")
        try:
            logged_in = await self.login_handler.attempt_login()
        except (NetworkError, httpx.HTTPError) as err:
            self._logger.warning(f"Login attempt failed: {err}")
            logged_in = False

        if not logged_in:
            return response

        await response.aclose()
        try:
            retry = self._build_request(method, url, headers, include_cookies, **kwargs)
            return await self.client.send(retry)
        except httpx.HTTPError as err:
            raise NetworkError(f"{method} {url} failed on retry: {err}") from err

    async def _handle_response(self, response: httpx.Response, name: str | None = None) -> Any:
        """Handle API response and errors."""
        subject = name or response.request.url.path.split("/")[-1]

        if response.status_code == 401:
            raise AuthenticationError(f"Unauthorized request for {subject}")

        if response.status_code == 404:
            raise NotFoundError(subject)

        if response.status_code >= 400:
            try:
                error_data = response.json()
                message = error_data.get("message") or error_data.get("error")
            except (json.JSONDecodeError, AttributeError):
                message = None
            raise FetchError(subject, response.status_code, message)

        try:
            return response.json()
        except json.JSONDecodeError as err:
            raise NetworkError(f"Invalid response format for {subject}") from err

    async def fetch_definition(self, kind: str, name: str) -> dict[str, Any]:
        """Fetch the JSON definition of a named particle, feature, etc."""
        name = require_name(name, f"{kind} name")
        log_event(f"GET /{kind}/{name}", "CLIENT_DEBUG")

        try:
            response = await self.send("GET", f"/{kind}/{quote(name, safe='')}")
        except NetworkError as err:
            raise FetchError(name, None, str(err)) from err

        data = await self._handle_response(response, name)
        if not isinstance(data, dict):
            raise NetworkError(f"Definition of {name} is not a JSON object")
        return data
