"""Running-instance overlay keyed by resolved node id."""

from typing import Any, Iterator

from ..models import RunningInstance, UnknownNodeError


class RunningInstanceStore:
    """Sparse map node id -> (start_point, transformation_shift).

    Entries are seeded with (0, 0) as the resolver assigns ids and can be
    edited afterwards; only ``clear`` removes them.
    """

    def __init__(self) -> None:
        self._instances: dict[int, RunningInstance] = {}

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._instances

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._instances))

    def clear(self) -> None:
        self._instances.clear()

    def seed(self, node_id: int) -> None:
        self._instances[node_id] = RunningInstance()

    def get(self, node_id: int) -> RunningInstance:
        try:
            return self._instances[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def set(self, node_id: int, start_point: int, transformation_shift: int) -> RunningInstance:
        """Edit the pair of an existing node."""
        if node_id not in self._instances:
            raise UnknownNodeError(node_id)
        instance = RunningInstance(
            start_point=int(start_point),
            transformation_shift=int(transformation_shift),
        )
        self._instances[node_id] = instance
        return instance

    def items(self) -> list[tuple[int, RunningInstance]]:
        return [(node_id, self._instances[node_id]) for node_id in self]

    def as_dict(self) -> dict[int, RunningInstance]:
        return dict(self.items())

    def to_payload(self) -> list[dict[str, Any]]:
        """Serialize in node-id order for an execute request."""
        return [instance.model_dump() for _, instance in self.items()]

    @classmethod
    def from_dict(cls, instances: dict[int, RunningInstance]) -> "RunningInstanceStore":
        store = cls()
        for node_id, instance in instances.items():
            store._instances[int(node_id)] = instance.model_copy()
        return store
