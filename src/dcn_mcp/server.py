"""DCN catalog MCP server implementation using FastMCP."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP

from . import __version__
from .client import CatalogClient
from .config import ServerConfig, setup_logging
from .models import ResolvedTree

logger = logging.getLogger(__name__)

# Global client instance
_client: CatalogClient | None = None


def get_client() -> CatalogClient:
    """Get the global catalog client instance."""
    if _client is None:
        raise RuntimeError("Catalog client not initialized. Server not started properly.")
    return _client


def tree_view(tree: ResolvedTree | None) -> dict[str, Any]:
    """Flatten a resolved tree into the tool response shape."""
    if tree is None:
        return {"success": False, "error": "No tree resolved yet"}

    return {
        "success": True,
        "root_name": tree.root_name,
        "kind": tree.kind,
        "node_count": len(tree.nodes),
        "nodes": [node.model_dump() for node in tree.nodes],
        "running_instances": {
            str(node_id): instance.model_dump()
            for node_id, instance in sorted(tree.running_instances.items())
        },
    }


@asynccontextmanager
async def lifespan(_app: FastMCP):  # type: ignore[no-untyped-def]
    """Manage server lifecycle."""
    global _client

    logger.info("Starting DCN catalog MCP server")

    config = ServerConfig()
    api_config = config.get_api_config()

    # No login handler: a headless server cannot sign nonces, so it relies on
    # DCN_ACCESS_TOKEN or the catalog_set_access_token tool
    _client = CatalogClient(api_config)
    logger.info(f"Catalog client initialized with base URL: {api_config.base_url}")

    yield

    logger.info("Shutting down DCN catalog MCP server")
    if _client:
        await _client.close()
        _client = None


mcp = FastMCP(
    "DCN Catalog MCP Server",
    version=__version__,
    instructions=(
        "Resolve DCN particle/feature dependency trees, edit per-node running "
        "instances and submit execution requests"
    ),
    lifespan=lifespan,
)


# Tool: Get Definition
@mcp.tool(
    name="catalog_get_definition",
    description="Fetch a particle, feature, transformation or condition definition by name",
)
async def get_definition(
    name: str,
    kind: Literal["particle", "feature", "transformation", "condition"] = "particle",
) -> dict:
    client = get_client()
    return await client.get_definition(kind, name)


# Tool: Resolve Tree
@mcp.tool(
    name="catalog_resolve_tree",
    description="Resolve the dependency tree of a particle or feature and reset its running instances",
)
async def resolve_tree(
    root_name: str,
    kind: Literal["particle", "feature"] = "particle",
) -> dict:
    """Resolve a dependency tree depth-first.

    Args:
        root_name: Name of the root particle or feature
        kind: Which catalog the tree lives in

    Returns:
        Pre-order node list (ids from 0, parent -1 for the root) and the
        (0, 0)-seeded running instances keyed by node id
    """
    client = get_client()
    await client.resolve_tree(root_name, kind=kind)
    return tree_view(client.current_tree())


# Tool: Show Tree
@mcp.tool(
    name="catalog_current_tree",
    description="Show the current resolved tree with its edited running instances",
)
async def current_tree() -> dict:
    return tree_view(get_client().current_tree())


# Tool: Set Running Instance
@mcp.tool(
    name="catalog_set_running_instance",
    description="Set start_point and transformation_shift for one node of the current tree",
)
async def set_running_instance(node_id: int, start_point: int, transformation_shift: int) -> dict:
    client = get_client()
    instance = client.set_running_instance(node_id, start_point, transformation_shift)
    return {"success": True, "node_id": node_id, **instance.model_dump()}


# Tool: Execute
@mcp.tool(
    name="catalog_execute",
    description="Execute the current tree with its running instances",
)
async def execute(samples_count: int) -> dict:
    """Submit the current tree; the service response is passed through as-is."""
    client = get_client()
    result = await client.execute(samples_count)
    return result.model_dump()


# Tool: Create Definition
@mcp.tool(
    name="catalog_create_definition",
    description="Upload a particle, feature, transformation or condition definition",
)
async def create_definition(
    definition: dict,
    kind: Literal["particle", "feature", "transformation", "condition"] = "particle",
) -> dict:
    """Upload a structured definition; the service response is passed through as-is."""
    client = get_client()
    result = await client.create_definition(kind, definition)
    return result.model_dump()


# Tool: Account Resources
@mcp.tool(
    name="catalog_account_resources",
    description="List features, transformations, conditions and particles owned by an address",
)
async def account_resources(address: str, page: int = 0) -> dict:
    client = get_client()
    return await client.get_account_resources(address, page=page)


# Tool: Set Access Token
@mcp.tool(
    name="catalog_set_access_token",
    description="Store a bearer token for authenticated catalog calls (empty clears it)",
)
async def set_access_token(token: str = "") -> dict:
    client = get_client()
    client.token_store.set(token.strip() or None)
    return {"success": True, "authenticated": client.token_store.get() is not None}


# Resource: Version
@mcp.resource(
    uri="dcn://version",
    name="dcn_version",
    description="Catalog service version and build timestamp",
)
async def get_version() -> str:
    client = get_client()
    return json.dumps(await client.get_version(), indent=2)


def main() -> None:
    """Run the server over stdio."""
    config = ServerConfig()
    setup_logging(config.log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
