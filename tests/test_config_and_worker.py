"""
Tests for configuration, the command-line worker and the MCP tree view.
"""

import argparse
import asyncio
import json
from typing import Any, List

import httpx
import pytest

from dcn_mcp import resolve_worker
from dcn_mcp.client import TokenStore
from dcn_mcp.config import ServerConfig
from dcn_mcp.models import Node, ResolvedTree, RunningInstance
from dcn_mcp.server import tree_view

from .conftest import FakeCatalog


def test_server_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """TC-01: DCN_* variables build the client configuration."""
    monkeypatch.setenv("DCN_API_URL", "https://dcn.example/api/")
    monkeypatch.setenv("DCN_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("DCN_TIMEOUT", "5")

    api_config = ServerConfig().get_api_config()

    assert api_config.base_url == "https://dcn.example/api"
    assert api_config.access_token.get_secret_value() == "tok"
    assert api_config.timeout == 5.0


def test_parse_instance_edit() -> None:
    """TC-02: Instance edits parse as three integers."""
    assert resolve_worker.parse_instance_edit("2:10:-1") == (2, 10, -1)

    with pytest.raises(argparse.ArgumentTypeError):
        resolve_worker.parse_instance_edit("2:10")
    with pytest.raises(argparse.ArgumentTypeError):
        resolve_worker.parse_instance_edit("a:b:c")


def test_worker_prints_resolved_tree(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    """TC-03: The worker resolves, applies edits and prints JSON."""
    catalog = FakeCatalog(particles={
        "A": {"name": "A", "composite_names": ["", ""]},
    })
    real_client = resolve_worker.CatalogClient

    def client_factory(config: Any) -> Any:
        return real_client(config, transport=catalog.transport)

    monkeypatch.setattr(resolve_worker, "CatalogClient", client_factory)
    monkeypatch.delenv("DCN_ACCESS_TOKEN", raising=False)

    args = resolve_worker.build_parser().parse_args(
        ["A", "--set", "1:4:2", "--api-url", "http://catalog.test"]
    )

    assert asyncio.run(resolve_worker.run(args)) == 0

    output = json.loads(capsys.readouterr().out)
    assert [n["name"] for n in output["tree"]["nodes"]] == ["/A", "/A/A_0", "/A/A_1"]
    assert output["tree"]["running_instances"]["1"] == {"start_point": 4, "transformation_shift": 2}
    assert "execute" not in output


def test_worker_reports_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """TC-04: Catalog errors end the worker with a non-zero status."""
    catalog = FakeCatalog()
    real_client = resolve_worker.CatalogClient
    monkeypatch.setattr(
        resolve_worker, "CatalogClient",
        lambda config: real_client(config, transport=catalog.transport),
    )

    args = resolve_worker.build_parser().parse_args(["missing", "--api-url", "http://catalog.test"])

    assert asyncio.run(resolve_worker.run(args)) == 1


def test_tree_view_shape() -> None:
    """TC-05: The MCP view lists nodes and string-keyed instances."""
    tree = ResolvedTree(
        root_name="A",
        nodes=[Node(id=0, parent=-1, path="/A", name="/A", label="A", scalar=True)],
        running_instances={0: RunningInstance(start_point=1)},
    )

    view = tree_view(tree)

    assert view["success"] is True
    assert view["node_count"] == 1
    assert view["running_instances"] == {"0": {"start_point": 1, "transformation_shift": 0}}
    assert tree_view(None)["success"] is False


def test_worker_authenticates_with_bearer_token(monkeypatch: pytest.MonkeyPatch) -> None:
    """TC-06: --token is sent as a bearer token; a lasting 401 ends the run with 1."""
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.headers.get("Authorization") == "Bearer good":
            return httpx.Response(200, json={"name": "A", "composite_names": []})
        return httpx.Response(401)

    real_client = resolve_worker.CatalogClient
    monkeypatch.setattr(
        resolve_worker, "CatalogClient",
        lambda config: real_client(config, token_store=TokenStore(),
                                   transport=httpx.MockTransport(handler)),
    )
    monkeypatch.delenv("DCN_ACCESS_TOKEN", raising=False)
    parser = resolve_worker.build_parser()

    ok = parser.parse_args(["A", "--api-url", "http://catalog.test", "--token", "good"])
    denied = parser.parse_args(["A", "--api-url", "http://catalog.test", "--token", "bad"])

    assert asyncio.run(resolve_worker.run(ok)) == 0
    assert asyncio.run(resolve_worker.run(denied)) == 1
    assert [r.headers["Authorization"] for r in seen] == ["Bearer good", "Bearer bad"]
