"""Per-pass memo of feature dimension counts."""

from typing import Any, Awaitable, Callable

from .log_utils import _ClientLogger

DefinitionFetcher = Callable[[str, str], Awaitable[dict[str, Any]]]


class FeatureDimensionCache:
    """Caches ``len(feature.dimensions)`` by feature name.

    A name is fetched at most once while the cache lives; failed fetches
    propagate and leave nothing behind.
    """

    def __init__(self, fetch_definition: DefinitionFetcher) -> None:
        self._fetch_definition = fetch_definition
        self._dimensions: dict[str, int] = {}
        self._logger = _ClientLogger("DIMENSIONS")

    def __len__(self) -> int:
        return len(self._dimensions)

    def __contains__(self, feature_name: object) -> bool:
        return feature_name in self._dimensions

    def clear(self) -> None:
        self._dimensions.clear()

    async def dimensions_of(self, feature_name: str | None) -> int:
        """Return the dimension count of a feature (0 for an empty name)."""
        name = (feature_name or "").strip()
        if not name:
            return 0

        cached = self._dimensions.get(name)
        if cached is not None:
            return cached

        feature = await self._fetch_definition("feature", name)
        dimensions = feature.get("dimensions")
        count = len(dimensions) if isinstance(dimensions, list) else 0

        self._dimensions[name] = count
        self._logger.debug(f"Feature {name} has {count} dimension(s)")
        return count
