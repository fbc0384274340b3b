"""Depth-first resolution of a particle/feature dependency tree.

A root name is expanded into a flat, parent-linked list of nodes in
pre-order. Traversal uses an explicit LIFO stack and a monotonically
increasing id counter rather than recursion, so depth is not bounded by the
call stack and ids follow visitation order exactly:

    stack = [(parent=-1, path="", name=root)]
    while stack:
        pop -> assign next id
        placeholder?  -> emit scalar node, no fetch
        else          -> fetch definition, derive children,
                         push children last-to-first, emit node

Pushing children in reverse index order makes the next pops visit them
left-to-right. Every emitted node gets a (0, 0) running instance.

Each ``resolve`` call runs in its own ``ResolutionSession`` (counter,
running-instance store, dimension cache), and fetches are awaited one at a
time: node ids are part of the contract, so no fan-out is attempted.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..models import (
    CycleDetectedError,
    Node,
    ResolutionCancelledError,
    ResolvedTree,
    TreeKind,
)
from .api_client_core import require_name
from .composite_names import (
    extract_composite_names,
    feature_reference,
    is_scalar,
    needs_dimension_count,
)
from .dimension_cache import FeatureDimensionCache
from .log_utils import _ClientLogger
from .running_instances import RunningInstanceStore

DefinitionFetcher = Callable[[str, str], Awaitable[dict[str, Any]]]


class CancellationToken:
    """Marks a resolution pass as superseded."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self, root_name: str) -> None:
        if self._cancelled:
            raise ResolutionCancelledError(f"Resolution of {root_name} was superseded")


@dataclass(frozen=True)
class _StackEntry:
    parent: int
    path: str
    name: str
    is_scalar_leaf: bool
    ancestry: tuple[str, ...] = ()


class ResolutionSession:
    """State of a single resolution pass."""

    def __init__(
        self,
        fetch_definition: DefinitionFetcher,
        kind: TreeKind = "particle",
        token: CancellationToken | None = None,
    ) -> None:
        self.kind = kind
        self.token = token or CancellationToken()
        self.running_instances = RunningInstanceStore()
        self.dimensions = FeatureDimensionCache(fetch_definition)
        self.nodes: list[Node] = []
        self._fetch_definition = fetch_definition
        self._next_id = 0
        self._logger = _ClientLogger("RESOLVER")

    def _assign_id(self) -> int:
        node_id = self._next_id
        self._next_id += 1
        return node_id

    def _emit(self, node_id: int, entry: _StackEntry, label: str, scalar: bool) -> None:
        full_path = f"{entry.path}/{label}"
        self.nodes.append(
            Node(
                id=node_id,
                parent=entry.parent,
                path=full_path,
                name=full_path,
                label=label,
                scalar=scalar,
            )
        )
        self.running_instances.seed(node_id)

    async def run(self, root_name: str) -> ResolvedTree:
        """Resolve ``root_name``; any failed fetch aborts the whole pass."""
        root_name = require_name(root_name, f"{self.kind} name")

        self.running_instances.clear()
        self.dimensions.clear()
        self.nodes = []
        self._next_id = 0

        stack = [_StackEntry(parent=-1, path="", name=root_name, is_scalar_leaf=False)]

        while stack:
            self.token.raise_if_cancelled(root_name)

            entry = stack.pop()
            node_id = self._assign_id()

            if entry.is_scalar_leaf:
                self._emit(node_id, entry, entry.name, scalar=True)
                continue

            definition = await self._fetch_definition(self.kind, entry.name)
            self.token.raise_if_cancelled(root_name)

            remote_name = definition.get("name")
            particle_name = remote_name.strip() if isinstance(remote_name, str) else ""
            particle_name = particle_name or entry.name
            full_path = f"{entry.path}/{particle_name}"

            expected_dimensions = 0
            if needs_dimension_count(definition):
                expected_dimensions = await self.dimensions.dimensions_of(
                    feature_reference(definition)
                )
                self.token.raise_if_cancelled(root_name)

            child_names = extract_composite_names(definition, expected_dimensions)
            ancestry = entry.ancestry + (entry.name,)

            for i in range(len(child_names) - 1, -1, -1):
                child_name = child_names[i]
                if child_name:
                    if child_name in ancestry:
                        raise CycleDetectedError(child_name, ancestry)
                    stack.append(_StackEntry(node_id, full_path, child_name, False, ancestry))
                else:
                    stack.append(
                        _StackEntry(node_id, full_path, f"{particle_name}_{i}", True, ancestry)
                    )

            self._emit(node_id, entry, particle_name, scalar=is_scalar(child_names))

        self._logger.info(f"Resolved {self.kind} {root_name}: {len(self.nodes)} node(s)")

        return ResolvedTree(
            root_name=root_name,
            kind=self.kind,
            nodes=self.nodes,
            running_instances=self.running_instances.as_dict(),
        )


class TreeResolver:
    """Builds a fresh session for every resolution pass."""

    def __init__(self, fetch_definition: DefinitionFetcher) -> None:
        self._fetch_definition = fetch_definition

    def new_session(
        self, kind: TreeKind = "particle", token: CancellationToken | None = None
    ) -> ResolutionSession:
        return ResolutionSession(self._fetch_definition, kind=kind, token=token)

    async def resolve(
        self,
        root_name: str,
        kind: TreeKind = "particle",
        token: CancellationToken | None = None,
    ) -> ResolvedTree:
        return await self.new_session(kind, token).run(root_name)
