"""DCN catalog API client implementation."""

import json
import math
from typing import Any
from urllib.parse import quote

import httpx

from ..models import (
    APIConfiguration,
    DefinitionKind,
    ExecuteResult,
    NetworkError,
    ResolvedTree,
    RunningInstance,
    TreeKind,
)
from .api_client_core import CatalogClientCore, format_json, require_name
from .auth import LoginHandler, TokenStore
from .log_utils import _ClientLogger
from .running_instances import RunningInstanceStore
from .tree_resolver import CancellationToken, TreeResolver

ACCOUNT_PAGE_SIZE = 10

DEFINITION_KINDS = ("particle", "feature", "transformation", "condition")

# Owned-resource totals reported by GET /account/{address}
ACCOUNT_TOTAL_FIELDS = (
    "total_features",
    "total_transformations",
    "total_conditions",
    "total_particles",
)


def account_total_pages(data: dict[str, Any], page_size: int = ACCOUNT_PAGE_SIZE) -> int:
    """Number of pages needed for the largest owned-resource list."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    totals = [int(data.get(field) or 0) for field in ACCOUNT_TOTAL_FIELDS]
    return max(math.ceil(total / page_size) for total in totals)


def build_execute_payload(tree: ResolvedTree, samples_count: int | str) -> dict[str, Any]:
    """Serialize a resolved tree and its running instances for POST /execute."""
    samples = str(samples_count).strip()
    instances = RunningInstanceStore.from_dict(tree.running_instances).to_payload()

    if tree.kind == "feature":
        return {"feature_name": tree.root_name, "n": samples, "running_instances": instances}
    return {"particle_name": tree.root_name, "samples_count": samples, "running_instances": instances}


def _pass_through(response: httpx.Response) -> ExecuteResult:
    text = response.text
    try:
        body: Any = json.loads(text)
    except json.JSONDecodeError:
        body = text

    return ExecuteResult(
        status_code=response.status_code,
        ok=response.is_success,
        body=body,
        text=format_json(text),
    )


class CatalogClient(CatalogClientCore):
    """Catalog client with tree resolution and the running-instance overlay."""

    def __init__(
        self,
        config: APIConfiguration,
        login_handler: LoginHandler | None = None,
        token_store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config, login_handler, token_store, transport)
        self.resolver = TreeResolver(self.fetch_definition)
        self.tree: ResolvedTree | None = None
        self.running_instances = RunningInstanceStore()
        self._active_token: CancellationToken | None = None
        self._logger = _ClientLogger("CATALOG")

    async def get_definition(self, kind: DefinitionKind, name: str) -> dict[str, Any]:
        """Fetch a particle, feature, transformation or condition definition."""
        return await self.fetch_definition(kind, name)

    async def get_particle(self, name: str) -> dict[str, Any]:
        return await self.fetch_definition("particle", name)

    async def get_feature(self, name: str) -> dict[str, Any]:
        return await self.fetch_definition("feature", name)

    async def get_version(self) -> dict[str, Any]:
        """Fetch backend version and build timestamp."""
        response = await self.send("GET", "/version")
        return await self._handle_response(response, "version")

    async def get_account_resources(
        self, address: str, page: int = 0, limit: int = ACCOUNT_PAGE_SIZE
    ) -> dict[str, Any]:
        """Fetch one page of the resources owned by an address.

        The response is returned with ``page``, ``limit`` and ``total_pages``
        added.
        """
        address = require_name(address, "address")
        if page < 0:
            raise ValueError("page must be >= 0")

        response = await self.send(
            "GET",
            f"/account/{quote(address, safe='')}",
            params={"limit": limit, "page": page},
            headers={"Content-Type": "application/json"},
        )
        data = await self._handle_response(response, address)
        if not isinstance(data, dict):
            raise NetworkError(f"Account data for {address} is not a JSON object")

        return {**data, "page": page, "limit": limit, "total_pages": account_total_pages(data, limit)}

    async def resolve_tree(self, root_name: str, kind: TreeKind = "particle") -> ResolvedTree:
        """Resolve a dependency tree and make it the current tree.

        Starting a pass cancels any pass still in flight; the superseded one
        raises ResolutionCancelledError instead of publishing its result.
        """
        root_name = require_name(root_name, f"{kind} name")

        if self._active_token is not None:
            self._active_token.cancel()
        token = CancellationToken()
        self._active_token = token

        try:
            tree = await self.resolver.resolve(root_name, kind=kind, token=token)
        finally:
            if self._active_token is token:
                self._active_token = None

        token.raise_if_cancelled(root_name)
        self.tree = tree
        self.running_instances = RunningInstanceStore.from_dict(tree.running_instances)
        return tree

    def set_running_instance(
        self, node_id: int, start_point: int, transformation_shift: int
    ) -> RunningInstance:
        """Edit the running instance of a node in the current tree."""
        return self.running_instances.set(node_id, start_point, transformation_shift)

    def current_tree(self) -> ResolvedTree | None:
        """Return the current tree with the edited running instances."""
        if self.tree is None:
            return None
        return self.tree.model_copy(update={"running_instances": self.running_instances.as_dict()})

    async def execute(self, samples_count: int | str) -> ExecuteResult:
        """Submit the current tree for execution; the response is passed through."""
        tree = self.current_tree()
        if tree is None:
            raise ValueError("No resolved tree; resolve a root name first")

        require_name(str(samples_count), "samples count")
        payload = build_execute_payload(tree, samples_count)
        self._logger.info(
            f"Executing {tree.kind} {tree.root_name} with {len(payload['running_instances'])} instance(s)"
        )

        response = await self.send(
            "POST",
            "/execute",
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        return _pass_through(response)

    async def create_definition(self, kind: DefinitionKind, definition: dict[str, Any]) -> ExecuteResult:
        """Upload a particle, feature, transformation or condition definition.

        The definition is POSTed as-is; validation is left to the service and
        its response is passed through whatever the status.
        """
        if kind not in DEFINITION_KINDS:
            raise ValueError(f"Unknown definition kind: {kind}")
        if not isinstance(definition, dict):
            raise ValueError("definition must be a JSON object")
        raw_name = definition.get("name")
        name = require_name(raw_name if isinstance(raw_name, str) else None, f"{kind} name")

        self._logger.info(f"Uploading {kind} {name}")
        response = await self.send(
            "POST",
            f"/{kind}",
            json=definition,
            headers={"Content-Type": "application/json"},
        )
        return _pass_through(response)

    async def login(self) -> bool:
        """Run the injected login handler directly."""
        if self.login_handler is None:
            self._logger.warning("No login handler configured")
            return False
        return await self.login_handler.attempt_login()
