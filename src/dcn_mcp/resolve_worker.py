#!/usr/bin/env python3
"""
Resolve worker - Command-line tree resolution and execution.

Resolves the dependency tree of a particle or feature, optionally applies
running-instance edits, and optionally submits the tree for execution.
Results are printed to stdout as JSON; progress goes to stderr.

Usage:
    python -m dcn_mcp.resolve_worker <root_name> [--kind particle|feature]
        [--set NODE_ID:START_POINT:TRANSFORMATION_SHIFT ...]
        [--execute SAMPLES_COUNT]

Configuration comes from DCN_API_URL / DCN_ACCESS_TOKEN / DCN_TIMEOUT unless
overridden by --api-url / --token. The worker has no wallet to sign a login
nonce, so calls that need authentication must be given a bearer token; an
unauthorized response ends the run with status 1.
"""

import argparse
import asyncio
import json
import sys

from pydantic import SecretStr

from .client import CatalogClient
from .client.log_utils import log_event
from .config import ServerConfig
from .models import CatalogError


def log_worker(message: str, component: str = "RESOLVE_WORKER") -> None:
    """Log to stderr with timestamp."""
    log_event(message, component)


def parse_instance_edit(text: str) -> tuple[int, int, int]:
    """Parse NODE_ID:START_POINT:TRANSFORMATION_SHIFT."""
    parts = text.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(
            f"expected NODE_ID:START_POINT:TRANSFORMATION_SHIFT, got {text!r}"
        )
    try:
        node_id, start_point, shift = (int(p.strip()) for p in parts)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"non-integer value in {text!r}") from err
    return node_id, start_point, shift


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Resolve a DCN particle/feature tree')
    parser.add_argument('root_name', help='Root particle or feature name')
    parser.add_argument('--kind', default='particle', choices=['particle', 'feature'],
                        help='Catalog the root lives in')
    parser.add_argument('--set', dest='edits', action='append', default=[],
                        type=parse_instance_edit, metavar='ID:START:SHIFT',
                        help='Running-instance edit (repeatable)')
    parser.add_argument('--execute', dest='samples_count', type=int,
                        help='Submit the tree with this samples count')
    parser.add_argument('--api-url', help='Catalog base URL (overrides DCN_API_URL)')
    parser.add_argument('--token', help='Bearer token (overrides DCN_ACCESS_TOKEN)')
    return parser


async def run(args: argparse.Namespace) -> int:
    config = ServerConfig()
    api_config = config.get_api_config()
    if args.api_url:
        api_config.base_url = args.api_url.rstrip("/")
    if args.token:
        api_config.access_token = SecretStr(args.token)

    async with CatalogClient(api_config) as client:
        try:
            log_worker(f"Resolving {args.kind} {args.root_name} from {api_config.base_url}")
            await client.resolve_tree(args.root_name, kind=args.kind)

            for node_id, start_point, shift in args.edits:
                client.set_running_instance(node_id, start_point, shift)

            tree = client.current_tree()
            output: dict = {"tree": tree.model_dump(mode="json") if tree else None}

            if args.samples_count is not None:
                log_worker(f"Executing with samples_count={args.samples_count}")
                result = await client.execute(args.samples_count)
                output["execute"] = result.model_dump(mode="json")

        except CatalogError as e:
            log_worker(f"Resolution failed: {e}")
            return 1

    print(json.dumps(output, indent=2))
    return 0


def main() -> None:
    args = build_parser().parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        log_worker("Worker interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
