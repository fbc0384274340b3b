"""Data models and error types for the DCN catalog client."""

from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr

DefinitionKind = Literal["particle", "feature", "transformation", "condition"]
TreeKind = Literal["particle", "feature"]


class CatalogError(Exception):
    """Base error for all catalog client failures."""


class NetworkError(CatalogError):
    """Transport failure or unusable response from the catalog service."""


class FetchError(NetworkError):
    """Non-success status while fetching a named definition."""

    def __init__(self, name: str, status_code: int | None = None, message: str | None = None):
        self.name = name
        self.status_code = status_code
        detail = message or (
            f"HTTP {status_code}" if status_code is not None else "request failed"
        )
        super().__init__(f"Failed to fetch {name}: {detail}")


class NotFoundError(FetchError):
    """The catalog has no definition under the requested name."""

    def __init__(self, name: str, message: str | None = None):
        super().__init__(name, 404, message or "not found")


class AuthenticationError(CatalogError):
    """Unauthorized response that the login retry could not recover."""


class InvalidNameError(CatalogError, ValueError):
    """Empty root or required name supplied by the caller."""


class UnknownNodeError(CatalogError, KeyError):
    """Running-instance edit for a node id outside the current tree."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Unknown node id: {node_id}")

    def __str__(self) -> str:
        return self.args[0]


class CycleDetectedError(CatalogError):
    """A definition references one of its own ancestors."""

    def __init__(self, name: str, ancestry: tuple[str, ...]):
        self.name = name
        self.ancestry = ancestry
        chain = " -> ".join((*ancestry, name))
        super().__init__(f"Reference cycle detected: {chain}")


class ResolutionCancelledError(CatalogError):
    """A resolution pass was superseded before it completed."""


class APIConfiguration(BaseModel):
    """Connection settings for the catalog service."""

    base_url: str = Field(default="http://localhost:8080", description="Catalog service base URL")
    access_token: SecretStr | None = Field(default=None, description="Initial bearer token")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class Node(BaseModel):
    """One entry of a flattened, pre-order dependency tree."""

    id: int = Field(ge=0)
    parent: int = Field(ge=-1, description="Parent id, -1 for the root")
    path: str
    name: str
    label: str
    scalar: bool


class RunningInstance(BaseModel):
    """Execution parameter pair overlaid onto a resolved node."""

    start_point: int = 0
    transformation_shift: int = 0


class ResolvedTree(BaseModel):
    """Result of one completed resolution pass."""

    root_name: str
    kind: TreeKind = "particle"
    nodes: list[Node] = Field(default_factory=list)
    running_instances: dict[int, RunningInstance] = Field(default_factory=dict)


class ExecuteResult(BaseModel):
    """Pass-through response of an execute request."""

    status_code: int
    ok: bool
    body: Any = None
    text: str = ""
