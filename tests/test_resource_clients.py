"""Tests for the resource clients: request paths, payloads and result shaping."""

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from conftest import make_artifact
from xcode_cloud_mcp.client import AppStoreConnectClient
from xcode_cloud_mcp.resource_clients import classify_artifacts


class RecordingTransport:
    """Serves canned responses by ``(method, path)`` and records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: Dict[Tuple[str, str], Tuple[int, Any]] = {}

    def respond(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.responses[(method, path)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.get(
            (request.method, request.url.path), (200, {"data": []})
        )
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_body(self) -> Dict[str, Any]:
        return json.loads(self.last.content)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def client(auth, transport) -> AppStoreConnectClient:
    return AppStoreConnectClient(
        auth, base_url="https://api.test", transport=httpx.MockTransport(transport)
    )


class TestProductsAndListings:
    @pytest.mark.asyncio
    async def test_list_products_with_limit(self, client, transport) -> None:
        await client.products.list(5)

        assert transport.last.url.path == "/v1/ciProducts"
        assert transport.last.url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_list_without_limit_sends_no_query(self, client, transport) -> None:
        await client.workflows.list_for_product("p1")

        assert transport.last.url.path == "/v1/ciProducts/p1/workflows"
        assert "limit" not in transport.last.url.params

    @pytest.mark.asyncio
    async def test_list_build_runs_for_workflow(self, client, transport) -> None:
        await client.builds.list_for_workflow("w1", 10)

        assert transport.last.url.path == "/v1/ciWorkflows/w1/buildRuns"
        assert transport.last.url.params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_test_destinations_request_sparse_fields(self, client, transport) -> None:
        transport.respond(
            "GET",
            "/v1/ciXcodeVersions/x1",
            body={"data": {"type": "ciXcodeVersions", "id": "x1", "attributes": {}}},
        )

        await client.xcode_versions.get_with_test_destinations("x1")

        assert (
            transport.last.url.params["fields[ciXcodeVersions]"]
            == "name,version,testDestinations"
        )

    @pytest.mark.asyncio
    async def test_compatible_macos_versions_path(self, client, transport) -> None:
        await client.xcode_versions.list_mac_os_versions("x1")

        assert transport.last.url.path == "/v1/ciXcodeVersions/x1/macOsVersions"

    @pytest.mark.asyncio
    async def test_repository_for_product_without_repositories(self, client, transport) -> None:
        assert await client.repositories.get_for_product("p1") is None
        assert transport.last.url.path == "/v1/ciProducts/p1/primaryRepositories"

    @pytest.mark.asyncio
    async def test_repository_for_product_returns_first(self, client, transport) -> None:
        transport.respond(
            "GET",
            "/v1/ciProducts/p1/primaryRepositories",
            body={
                "data": [
                    {"type": "scmRepositories", "id": "r1", "attributes": {}},
                    {"type": "scmRepositories", "id": "r2", "attributes": {}},
                ]
            },
        )

        repository = await client.repositories.get_for_product("p1")

        assert repository["id"] == "r1"


class TestBuilds:
    @pytest.mark.asyncio
    async def test_start_without_git_reference(self, client, transport) -> None:
        transport.respond(
            "POST", "/v1/ciBuildRuns", 201, {"data": {"type": "ciBuildRuns", "id": "b1"}}
        )

        build_run = await client.builds.start("w1")

        assert build_run["id"] == "b1"
        assert transport.last_body() == {
            "data": {
                "type": "ciBuildRuns",
                "relationships": {
                    "workflow": {"data": {"type": "ciWorkflows", "id": "w1"}}
                },
            }
        }

    @pytest.mark.asyncio
    async def test_start_with_git_reference(self, client, transport) -> None:
        transport.respond(
            "POST", "/v1/ciBuildRuns", 201, {"data": {"type": "ciBuildRuns", "id": "b1"}}
        )

        await client.builds.start("w1", "ref-main")

        relationships = transport.last_body()["data"]["relationships"]
        assert relationships["sourceBranchOrTag"] == {
            "data": {"type": "scmGitReferences", "id": "ref-main"}
        }

    @pytest.mark.asyncio
    async def test_cancel_deletes_build_run(self, client, transport) -> None:
        transport.respond("DELETE", "/v1/ciBuildRuns/b1", 204)

        await client.builds.cancel("b1")

        assert transport.last.method == "DELETE"
        assert transport.last.url.path == "/v1/ciBuildRuns/b1"


class TestWorkflowWrites:
    PARAMS = {
        "name": "CI",
        "description": "Runs tests",
        "containerFilePath": "App.xcodeproj",
        "repositoryId": "r1",
        "xcodeVersionId": "x1",
        "macOsVersionId": "m1",
        "actions": [
            {
                "name": "Test - iOS",
                "actionType": "TEST",
                "platform": "IOS",
                "scheme": "App",
                "destination": "ANY_IOS_SIMULATOR",
                "isRequiredToPass": True,
            }
        ],
    }

    @pytest.mark.asyncio
    async def test_create_applies_defaults_and_relationships(self, client, transport) -> None:
        transport.respond(
            "POST", "/v1/ciWorkflows", 201, {"data": {"type": "ciWorkflows", "id": "w9"}}
        )

        created = await client.workflows.create("p1", dict(self.PARAMS))

        assert created["id"] == "w9"
        data = transport.last_body()["data"]
        assert data["type"] == "ciWorkflows"
        assert data["attributes"]["isEnabled"] is True
        assert data["attributes"]["clean"] is False
        assert data["attributes"]["actions"] == self.PARAMS["actions"]
        assert "branchStartCondition" not in data["attributes"]
        assert data["relationships"] == {
            "product": {"data": {"type": "ciProducts", "id": "p1"}},
            "repository": {"data": {"type": "scmRepositories", "id": "r1"}},
            "xcodeVersion": {"data": {"type": "ciXcodeVersions", "id": "x1"}},
            "macOsVersion": {"data": {"type": "ciMacOsVersions", "id": "m1"}},
        }

    @pytest.mark.asyncio
    async def test_create_passes_start_condition(self, client, transport) -> None:
        transport.respond(
            "POST", "/v1/ciWorkflows", 201, {"data": {"type": "ciWorkflows", "id": "w9"}}
        )
        condition = {
            "source": {"isAllMatch": False, "patterns": [{"pattern": "main", "isPrefix": False}]},
            "autoCancel": True,
        }

        await client.workflows.create(
            "p1", {**self.PARAMS, "branchStartCondition": condition, "isEnabled": False}
        )

        attributes = transport.last_body()["data"]["attributes"]
        assert attributes["branchStartCondition"] == condition
        assert attributes["isEnabled"] is False

    @pytest.mark.asyncio
    async def test_update_sends_only_provided_fields(self, client, transport) -> None:
        transport.respond(
            "PATCH", "/v1/ciWorkflows/w1", body={"data": {"type": "ciWorkflows", "id": "w1"}}
        )

        await client.workflows.update("w1", {"name": "X"})

        data = transport.last_body()["data"]
        assert transport.last.method == "PATCH"
        assert data["id"] == "w1"
        assert data["attributes"] == {"name": "X"}
        assert "relationships" not in data

    @pytest.mark.asyncio
    async def test_update_sends_explicit_null_to_clear(self, client, transport) -> None:
        transport.respond(
            "PATCH", "/v1/ciWorkflows/w1", body={"data": {"type": "ciWorkflows", "id": "w1"}}
        )

        await client.workflows.update(
            "w1", {"branchStartCondition": None, "manualBranchStartCondition": None}
        )

        assert transport.last_body()["data"]["attributes"] == {
            "branchStartCondition": None,
            "manualBranchStartCondition": None,
        }

    @pytest.mark.asyncio
    async def test_update_relationships_only(self, client, transport) -> None:
        transport.respond(
            "PATCH", "/v1/ciWorkflows/w1", body={"data": {"type": "ciWorkflows", "id": "w1"}}
        )

        await client.workflows.update("w1", {"xcodeVersionId": "x2"})

        data = transport.last_body()["data"]
        assert "attributes" not in data
        assert data["relationships"] == {
            "xcodeVersion": {"data": {"type": "ciXcodeVersions", "id": "x2"}}
        }

    @pytest.mark.asyncio
    async def test_delete_workflow(self, client, transport) -> None:
        transport.respond("DELETE", "/v1/ciWorkflows/w1", 204)

        assert await client.workflows.delete("w1") is None
        assert transport.last.url.path == "/v1/ciWorkflows/w1"


class TestArtifacts:
    def test_classification_by_file_type(self) -> None:
        buckets = classify_artifacts(
            [
                make_artifact("a1", "LOG"),
                make_artifact("a2", "ARCHIVE"),
                make_artifact("a3", "SCREENSHOT"),
            ]
        )

        assert [a["id"] for a in buckets["logs"]] == ["a1"]
        assert [a["id"] for a in buckets["archives"]] == ["a2"]
        assert [a["id"] for a in buckets["screenshots"]] == ["a3"]
        assert buckets["videos"] == []
        assert buckets["other"] == []

    def test_unknown_types_land_in_other(self) -> None:
        buckets = classify_artifacts(
            [make_artifact("a1", "XCODEBUILD_PRODUCTS"), make_artifact("a2", "STAPLED_NOTARIZED_ARCHIVE")]
        )

        assert [a["id"] for a in buckets["other"]] == ["a1", "a2"]

    def test_xcodebuild_archive_counts_as_archive(self) -> None:
        buckets = classify_artifacts([make_artifact("a1", "XCODEBUILD_ARCHIVE")])

        assert [a["id"] for a in buckets["archives"]] == ["a1"]

    @pytest.mark.asyncio
    async def test_get_for_build_run_classifies_response(self, client, transport) -> None:
        transport.respond(
            "GET",
            "/v1/ciBuildRuns/b1/artifacts",
            body={"data": [make_artifact("a1", "RESULT_BUNDLE"), make_artifact("a2", "VIDEO")]},
        )

        artifacts = await client.artifacts.get_for_build_run("b1")

        assert [a["id"] for a in artifacts["resultBundles"]] == ["a1"]
        assert [a["id"] for a in artifacts["videos"]] == ["a2"]

    @pytest.mark.asyncio
    async def test_download_returns_bytes(self, auth) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"zip-bytes")

        client = AppStoreConnectClient(
            auth, base_url="https://api.test", transport=httpx.MockTransport(handler)
        )

        assert await client.artifacts.download("https://download.test/a1") == b"zip-bytes"


class TestCrossReferences:
    @pytest.mark.asyncio
    async def test_xcode_versions_for_macos(self, client, transport) -> None:
        await client.mac_os_versions.list_xcode_versions("m1", 2)

        assert transport.last.url.path == "/v1/ciMacOsVersions/m1/xcodeVersions"
        assert transport.last.url.params["limit"] == "2"

    @pytest.mark.asyncio
    async def test_repository_for_workflow(self, client, transport) -> None:
        transport.respond(
            "GET",
            "/v1/ciWorkflows/w1/repository",
            body={"data": {"type": "scmRepositories", "id": "r1", "attributes": {}}},
        )

        repository = await client.repositories.get_for_workflow("w1")

        assert repository["id"] == "r1"

    @pytest.mark.asyncio
    async def test_git_references_path(self, client, transport) -> None:
        await client.repositories.list_git_references("r1")

        assert transport.last.url.path == "/v1/scmRepositories/r1/gitReferences"


class TestClientLifecycle:
    @pytest.mark.asyncio
    async def test_aclose_closes_shared_http_client(self, client) -> None:
        await client.aclose()

        assert client._http.is_closed

    def test_resource_clients_share_auth(self, client, auth) -> None:
        assert client.auth is auth
        assert client.products._auth is client.builds._auth
