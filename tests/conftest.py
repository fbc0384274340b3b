"""
Global Pytest Configuration and Fixtures.

Provides an in-memory catalog service served through ``httpx.MockTransport``
so client, resolver and auth tests never touch the network.
"""

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import unquote

import httpx
import pytest

from dcn_mcp.client import CatalogClient, TokenStore
from dcn_mcp.models import APIConfiguration

BASE_URL = "http://catalog.test"


class FakeCatalog:
    """Serves particle/feature definitions and records every request."""

    def __init__(
        self,
        particles: Optional[Dict[str, Any]] = None,
        features: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.definitions: Dict[str, Dict[str, Any]] = {
            "particle": dict(particles or {}),
            "feature": dict(features or {}),
        }
        self.requests: List[httpx.Request] = []
        self.failing: Dict[str, int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [unquote(p) for p in request.url.path.strip("/").split("/")]

        if len(parts) == 2 and parts[0] in self.definitions:
            kind, name = parts
            if name in self.failing:
                return httpx.Response(self.failing[name], json={"message": "boom"})
            definition = self.definitions[kind].get(name)
            if definition is None:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=definition)

        return httpx.Response(404, json={"message": "unknown route"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> List[str]:
        return [unquote(r.url.path) for r in self.requests]

    def count(self, path: str) -> int:
        return self.paths().count(path)


@pytest.fixture
def make_client() -> Callable[..., CatalogClient]:
    """
    Build a CatalogClient bound to a mock transport and a private token store.

    Returns:
        Callable taking a transport (or FakeCatalog) plus client keyword args.
    """

    def _make(transport: Any, **kwargs: Any) -> CatalogClient:
        if isinstance(transport, FakeCatalog):
            transport = transport.transport
        kwargs.setdefault("token_store", TokenStore())
        return CatalogClient(APIConfiguration(base_url=BASE_URL), transport=transport, **kwargs)

    return _make
