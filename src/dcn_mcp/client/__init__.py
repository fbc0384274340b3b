"""DCN catalog API client package."""

from .api_client import CatalogClient, account_total_pages, build_execute_payload
from .api_client_core import CatalogClientCore, format_json
from .auth import LoginHandler, NonceLoginHandler, TokenStore, get_token_store
from .composite_names import CompositeShape, extract_composite_names, parse_composites
from .dimension_cache import FeatureDimensionCache
from .running_instances import RunningInstanceStore
from .tree_resolver import CancellationToken, ResolutionSession, TreeResolver

__all__ = [
    "CatalogClient",
    "CatalogClientCore",
    "CancellationToken",
    "CompositeShape",
    "FeatureDimensionCache",
    "LoginHandler",
    "NonceLoginHandler",
    "ResolutionSession",
    "RunningInstanceStore",
    "TokenStore",
    "TreeResolver",
    "account_total_pages",
    "build_execute_payload",
    "extract_composite_names",
    "format_json",
    "get_token_store",
    "parse_composites",
]
